"""Main function for copycat_capture."""

from copycat_capture.core import cli


def run_main() -> None:
    """Main entry point to copycat_capture."""
    cli.main()


if __name__ == "__main__":
    run_main()
