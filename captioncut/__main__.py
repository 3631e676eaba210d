"""Allow ``python -m captioncut``; pipeline stages run through this entry."""

from captioncut.cli import app

if __name__ == "__main__":
    app()
