"""Pure domain utilities: path validation, MIME table, response headers.

Nothing in here performs I/O, so the service, the smoke runner and the tests
can all share it.
"""
__all__ = ["paths", "mime", "headers"]
