"""malratings - Personal MyAnimeList ratings for anime media libraries."""

__version__ = "0.4.0"
__author__ = "malratings contributors"


def main() -> None:
    """Main entry point for malratings."""
    from .cli import main as cli_main

    cli_main()
