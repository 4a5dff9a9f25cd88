"""PySide6 desktop editor for SDeck Tools."""
