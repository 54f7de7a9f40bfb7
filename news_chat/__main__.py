"""Allow running the CLI with `python -m news_chat`."""

from .cli import main

if __name__ == "__main__":
    main()
