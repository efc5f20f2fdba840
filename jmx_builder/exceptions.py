"""Custom exceptions for JMX Builder.

This module defines the exception hierarchy for JMX Builder.
All custom exceptions inherit from JMXBuilderException base class.

Problems inside a test description (a timer without a delay, an include
that cannot be found, a CSV file that cannot be read) are not raised; they
are reported as diagnostics on the build result. Exceptions are reserved
for failures that stop a whole run.
"""


class JMXBuilderException(Exception):
    """Base exception for all JMX Builder errors.

    All custom exceptions in JMX Builder inherit from this base class
    to allow catching all tool-specific errors.
    """

    pass


class SourceParseException(JMXBuilderException):
    """Raised when a simplified test description cannot be parsed.

    This exception is raised when:
    - The document is not well-formed XML
    - The file cannot be decoded

    Attributes:
        path: Path of the document that failed to parse
    """

    def __init__(self, path: str, message: str) -> None:
        """Initialize with the failing path and parser message.

        Args:
            path: Path of the document that failed to parse
            message: Parser error message
        """
        self.path = path
        super().__init__(f"Failed to parse XML file '{path}': {message}")


class IncludeException(JMXBuilderException):
    """Raised when a script include cannot be honoured.

    This exception is raised when:
    - The included file does not exist
    - The include would re-enter a file already being included
    - The include chain is deeper than the configured limit

    The tree collector converts it into a diagnostic; it never escapes
    a build.
    """

    pass


class JMXGenerationException(JMXBuilderException):
    """Raised when JMX file generation fails.

    This exception is raised when:
    - The source document is missing or cannot be parsed
    - The JMX file cannot be written to disk
    """

    pass


class JMXValidationException(JMXBuilderException):
    """Raised when JMX validation encounters critical errors.

    This exception is raised when:
    - XML parsing fails
    - JMX file structure is critically malformed
    """

    pass


class SettingsException(JMXBuilderException):
    """Raised when a generator settings file is invalid.

    This exception is raised when:
    - YAML syntax is invalid
    - The document is not a mapping
    - A key is unknown or a value has the wrong type
    """

    pass
