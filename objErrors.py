"""Exceptions raised while reading metadata, discovering and translating OBJ files."""


class ObjTranslateError(Exception):
    """Base class for every error raised by the translator."""


class MalformedMetadata(ObjTranslateError, ValueError):
    """The metadata document is missing or its origin field cannot be parsed."""


class PathUnreadable(ObjTranslateError, OSError):
    """A root directory or source file cannot be opened."""

    def __init__(self, path, reason=""):
        self.path = str(path)
        self.reason = str(reason)
        message = f"Cannot read '{self.path}'"
        if self.reason:
            message += f": {self.reason}"
        super().__init__(message)

    def __str__(self):
        return self.args[0]


class MalformedVertexLine(ObjTranslateError, ValueError):
    """A vertex line has fewer than three numeric fields or a non-numeric field."""

    def __init__(self, line, reason="", line_number=None):
        self.line = line
        self.reason = reason
        self.line_number = line_number
        super().__init__(line, reason, line_number)

    def __str__(self):
        where = f"line {self.line_number}: " if self.line_number is not None else ""
        why = f" ({self.reason})" if self.reason else ""
        return f"{where}malformed vertex line '{self.line}'{why}"


class IOFailure(ObjTranslateError, OSError):
    """Read or write error while streaming a file."""

    def __init__(self, path, reason=""):
        self.path = str(path)
        self.reason = str(reason)
        super().__init__(f"I/O error on '{self.path}': {self.reason}")

    def __str__(self):
        return self.args[0]
