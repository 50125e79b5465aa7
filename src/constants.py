"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 4


class DependencyConfigurations(Enum):
    """Dependency configurations a report can be produced for.

    Args:
        Enum (string): Configuration names and the Maven scopes they include.
    """

    COMPILE = "compile"
    RUNTIME = "runtime"
    TEST = "test"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REPOSITORY_URL_MAVEN = "https://repo1.maven.org/maven2"
    POM_XML_FILE = "pom.xml"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "DEPLICENSE_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3

    MAX_PARENT_DEPTH = 8
    FETCH_TIMEOUT_SEC = 600
    MAX_WORKERS = 8

    # Maven scopes visible in each dependency configuration
    CONFIGURATION_SCOPES = {
        DependencyConfigurations.COMPILE.value: ("compile", "provided", "system"),
        DependencyConfigurations.RUNTIME.value: ("compile", "runtime"),
        DependencyConfigurations.TEST.value: ("compile", "provided", "runtime", "test", "system"),
    }
    DEFAULT_CONFIGURATION = DependencyConfigurations.RUNTIME.value

    REPORT_BY_DEPENDENCY_FILE_NAME = "dependency-license"
    REPORT_BY_LICENSE_FILE_NAME = "license-dependency"
    REPORT_DESTINATION = "build/reports/license"
    NO_LICENSE_FOUND = "No license found"
