"""Entry point for 'python -m rolekeeper' command."""

from rolekeeper.cli import main

if __name__ == "__main__":
    main()
