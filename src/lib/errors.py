"""
Exception hierarchy for vaayu

Every failure raised by the compiler, the build and the dev server derives
from VaayuError so the command surface can report it uniformly.

    VaayuError
    ├── CompileError
    │   ├── ParseError          unterminated declarations / expression marker
    │   ├── DeclarationError    script fault while running the declarations
    │   └── EvaluationError     script fault while evaluating an expression
    ├── ManifestError           unreadable or malformed bundler manifest
    ├── WatcherError            filesystem observation fault
    ├── BundlerError            npm install / build / dev server failure
    └── BuildError              per-file failure during a batch build
"""

from pathlib import Path
from typing import Optional, Union


class VaayuError(Exception):
    """Base class for all vaayu errors"""
    pass


class CompileError(VaayuError):
    """
    Raised when a template cannot be compiled.

    Attributes:
        file_path: Template being compiled, when known
    """

    def __init__(self, message: str, file_path: Optional[Union[str, Path]] = None):
        self.message = message
        self.file_path = str(file_path) if file_path else None
        super().__init__(message)

    def __str__(self) -> str:
        if self.file_path:
            return f"{self.file_path}: {self.message}"
        return self.message


class ParseError(CompileError):
    """
    Raised when a template contains an unterminated marker.

    Attributes:
        position: Character offset of the offending marker, when known
        source: Text the offset refers to (used for the context excerpt)
    """

    def __init__(
        self,
        message: str,
        position: Optional[int] = None,
        source: str = "",
        file_path: Optional[Union[str, Path]] = None,
    ):
        self.position = position
        self.source = source
        super().__init__(message, file_path)

    def context_render(self, width: int = 40) -> str:
        """
        Render a one-line excerpt around the error position with a caret

        Returns:
            Two lines: the excerpt and a caret pointing at the position,
            or an empty string when no position is known.

        Example:
            Context: ...<p>{{ name </p>...
                           ^
        """
        if self.position is None or not self.source:
            return ""
        start = max(0, self.position - width)
        end = min(len(self.source), self.position + width)
        excerpt = self.source[start:end].replace("\n", " ")
        return (
            f"Context: ...{excerpt}...\n"
            f"         {' ' * (self.position - start + 3)}^"
        )

    def __str__(self) -> str:
        text = super().__str__()
        if self.position is not None:
            text = f"{text} (position {self.position})"
        return text


class DeclarationError(CompileError):
    """Raised when the declarations block fails to execute"""
    pass


class EvaluationError(CompileError):
    """
    Raised when an expression fails to evaluate.

    Attributes:
        expression: Raw text of the failing expression
    """

    def __init__(
        self,
        message: str,
        expression: str,
        file_path: Optional[Union[str, Path]] = None,
    ):
        self.expression = expression
        super().__init__(message, file_path)


class ManifestError(VaayuError):
    """Raised when the bundler manifest cannot be read or parsed"""
    pass


class WatcherError(VaayuError):
    """Raised when the filesystem watcher cannot observe the site"""
    pass


class BundlerError(VaayuError):
    """Raised when an external bundler command fails"""
    pass


class BuildError(VaayuError):
    """
    Raised when a batch build fails on a specific file.

    Attributes:
        rel_path: Site-relative path of the file that failed
    """

    def __init__(self, message: str, rel_path: str = ""):
        self.rel_path = rel_path
        super().__init__(f"{rel_path}: {message}" if rel_path else message)
