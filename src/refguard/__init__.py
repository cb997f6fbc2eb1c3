"""Server-side git update hook enforcing ref creation, deletion and tag policy."""

__version__ = "0.1.0"
