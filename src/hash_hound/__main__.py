"""Main entry point for the hash_hound package."""
from hash_hound.cli import cli


def main():
    """Main entry point function."""
    cli()


if __name__ == "__main__":
    main()
