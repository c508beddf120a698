"""Custom exception types for the apleval evaluation harness.

The query engine itself reports failures as data (``QueryResult.success``,
``None`` lookups, zero scores). These exceptions belong to the outer layers:
configuration loading, case files and the CLI.
"""


class ConfigurationError(Exception):
    """Raised when the query endpoint configuration is required but missing.

    Only ``load_config(required=True)`` raises this. ``QueryExecutor`` turns a
    missing configuration into a failed ``QueryResult`` instead.

    Examples:
        * Raises ConfigurationError:
            - AXIOM_PLAY_URL set, AXIOM_PLAY_TOKEN unset
    """

    pass


class CaseFileError(Exception):
    """Raised when a translation case file or a recorded outputs file is malformed.

    This is raised when:
    - The YAML does not parse or does not have the expected top-level shape
    - Two cases share the same ``id``
    - The outputs file names a case id that the case file does not define
    """

    pass
