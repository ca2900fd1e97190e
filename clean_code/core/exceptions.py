"""Custom exceptions for the Clean Code engine with actionable solutions."""


class CleanCodeError(Exception):
    """Base exception for all Clean Code engine errors with actionable solutions."""

    error_code = "E000"  # Default error code, overridden by subclasses

    def __init__(self, message: str, solution: str = None, docs_url: str = None):
        """
        Initialize error with actionable guidance.

        Args:
            message: Error description
            solution: Suggested solution or next steps
            docs_url: Link to relevant documentation
        """
        self.solution = solution
        self.docs_url = docs_url

        full_message = f"[{self.error_code}] {message}"
        if solution:
            full_message += f"\n\nSolution: {solution}"
        if docs_url:
            full_message += f"\nDocs: {docs_url}"

        super().__init__(full_message)


class ValidationError(CleanCodeError):
    """Raised when input validation fails."""

    error_code = "E002"


class ConfigurationError(CleanCodeError):
    """Raised when configuration is invalid."""

    error_code = "E009"


class AnalyzerError(CleanCodeError):
    """Wraps a fault raised by a rule-checker so it can be logged with context."""

    error_code = "E016"

    def __init__(self, analyzer_id: str, cause: Exception, block_range: str = None):
        self.analyzer_id = analyzer_id
        self.cause = cause
        self.block_range = block_range

        where = f" on lines {block_range}" if block_range else ""
        message = f"Analyzer '{analyzer_id}' failed{where}: {type(cause).__name__}: {cause}"
        solution = (
            "The analyzer's results were dropped for this pass; other analyzers are unaffected.\n"
            f"Disable it with CLEAN_CODE_ANALYZERS__{analyzer_id.upper().replace('-', '_')}=false "
            "if the failure persists."
        )
        super().__init__(message, solution)


class UnsupportedLanguageError(CleanCodeError):
    """Raised when a host asks to analyze a file type the engine cannot read."""

    error_code = "E017"

    def __init__(self, path: str, suffix: str):
        self.path = path
        self.suffix = suffix
        super().__init__(
            f"Unsupported file type '{suffix or '<none>'}' for {path}",
            "Supported extensions: .ts, .tsx, .js, .jsx, .mjs, .cjs",
        )
