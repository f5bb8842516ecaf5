"""Base exception for everything the generation flow raises on purpose."""


class ChargenError(RuntimeError):
    """A fatal error for the current transition; persisted state is untouched."""
