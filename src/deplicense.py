"""deplicense - Dependency license resolver and report generator

    Returns:
        int: Exit code
"""
import logging
import os
import sys

from constants import ExitCodes
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from licenses.config import LicenseReportConfig, load_config, validate_config
from licenses.engine import LicenseResolver
from licenses.errors import ConfigurationError, LicenseResolutionError
from licenses.models import DependencyCoordinate
from registry.maven.pom import PomDescriptorFetcher
from registry.maven.scan import scan_source
from reporting.aggregate import by_license
from reporting.reporter import generate_reports


def load_coordinates_file(file_name):
    """Loads dependency coordinates from a file.

    Blank lines and lines starting with ``#`` are skipped.

    Args:
        file_name (str): File path containing one coordinate per line.

    Returns:
        list: List of coordinate strings
    """
    try:
        with open(file_name, encoding='utf-8') as file:
            lines = [line.strip() for line in file]
        return [line for line in lines if line and not line.startswith("#")]
    except FileNotFoundError as e:
        logging.error("File not found: %s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except IOError as e:
        logging.error("IO error: %s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def _parse_tokens(tokens):
    coordinates = []
    for tok in tokens:
        try:
            coordinates.append(DependencyCoordinate.parse(tok))
        except ValueError as e:
            logging.error("%s", e)
            sys.exit(ExitCodes.FILE_ERROR.value)
    return list(dict.fromkeys(coordinates))


def build_coordinates(args, config):
    """Build the dependency coordinate list from CLI inputs."""
    if args.RECURSIVE and not args.FROM_SRC:
        logging.warning("Recursive option is only applicable to source scans.")
    if args.LIST_FROM_FILE:
        return _parse_tokens(load_coordinates_file(args.LIST_FROM_FILE[0]))
    if args.FROM_SRC:
        return scan_source(args.FROM_SRC[0], recursive=args.RECURSIVE,
                           configuration=config.dependency_configuration)
    if args.SINGLE:
        return _parse_tokens(args.SINGLE)
    return []


def build_config(args):
    """Load the config file and apply CLI overrides (CLI has highest precedence)."""
    config = load_config(getattr(args, "CONFIG", None))
    output = getattr(args, "OUTPUT", None)
    config = config.with_overrides(
        include_project_dependencies=args.INCLUDE_PROJECT_DEPENDENCIES,
        ignore_fatal_parse_errors=args.IGNORE_FATAL_PARSE_ERRORS,
        dependency_configuration=args.DEPENDENCY_CONFIGURATION,
        exclude_dependencies=(config.exclude_dependencies + tuple(args.EXCLUDE)) if args.EXCLUDE else None,
        repositories=tuple(args.REPOSITORIES) if args.REPOSITORIES else None,
        local_repositories=(
            config.local_repositories + tuple(args.LOCAL_REPOSITORIES) if args.LOCAL_REPOSITORIES else None
        ),
        xml_destination=os.path.join(output, "xml") if output else None,
        html_destination=os.path.join(output, "html") if output else None,
        json_destination=os.path.join(output, "json") if output else None,
    )
    validate_config(config)
    return config


def create_resolver(coordinates, config: LicenseReportConfig) -> LicenseResolver:
    """Wire the POM fetcher and the resolver for one run."""
    fetcher = PomDescriptorFetcher(
        repositories=config.repositories,
        local_repositories=config.local_repositories,
        ignore_fatal_parse_errors=config.ignore_fatal_parse_errors,
        max_parent_depth=config.max_parent_depth,
    )
    return LicenseResolver(coordinates, config, fetcher)


def print_summary(result):
    """Print dependency counts per license to stdout."""
    for lic, deps in by_license(result):
        print(f"{lic}: {len(deps)}")
        for dep in deps:
            print(f"    {dep}")


def _setup_logging(args):
    if getattr(args, "LOG_LEVEL", None):
        os.environ['DEPLICENSE_LOG_LEVEL'] = str(args.LOG_LEVEL).upper()
    configure_logging()
    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)


def main(argv=None):
    """Main function of the program."""
    logger = logging.getLogger(__name__)

    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    try:
        config = build_config(args)
    except ConfigurationError as e:
        logging.error("Invalid configuration: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    coordinates = build_coordinates(args, config)
    if not coordinates:
        logging.warning("No dependencies found in the input list.")
        sys.exit(ExitCodes.SUCCESS.value)
    logging.info("Dependency list imported: %d coordinates", len(coordinates))

    try:
        resolver = create_resolver(coordinates, config)
        generate_reports(config, resolver)
        result = resolver.resolve()
    except ConfigurationError as e:
        logging.error("Invalid configuration: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except LicenseResolutionError as e:
        logging.error("%s", e)
        sys.exit(ExitCodes.RESOLUTION_ERROR.value)

    if not args.QUIET:
        print_summary(result)

    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
