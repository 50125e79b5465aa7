"""Argument parsing functionality for deplicense."""

import argparse
from constants import Constants


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="deplicense",
        description=(
            "deplicense - Dependency license resolver and report generator"
        ),
        add_help=True,
    )

    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument("-l", "--load_list",
                        dest="LIST_FROM_FILE",
                        help="Load list of group:artifact:version coordinates from a file",
                        action="append", type=str,
                        default=[])
    input_group.add_argument("-d", "--directory",
                    dest="FROM_SRC",
                    help="Extract dependencies from the pom.xml of a local source repository",
                    action="append",
                    type=str)
    input_group.add_argument("-p", "--package",
                            dest="SINGLE",
                            help="Name a single group:artifact:version coordinate.",
                            action="append", type=str)

    parser.add_argument("-r", "--recursive",
                        dest="RECURSIVE",
                        help="Recursively scan directories when scanning from source.",
                        action="store_true")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Report output directory (xml/, html/ and json/ are created below it)",
                        action="store",
                        type=str)
    parser.add_argument("--configuration",
                        dest="DEPENDENCY_CONFIGURATION",
                        help="Dependency configuration to report on",
                        action="store",
                        type=str.lower,
                        choices=sorted(Constants.CONFIGURATION_SCOPES))
    parser.add_argument("--include-project-dependencies",
                        dest="INCLUDE_PROJECT_DEPENDENCIES",
                        help="Include modules of the scanned project in the reports.",
                        action="store_true",
                        default=None)
    parser.add_argument("--ignore-fatal-parse-errors",
                        dest="IGNORE_FATAL_PARSE_ERRORS",
                        help="Report dependencies with unreadable POMs as unlicensed instead of failing.",
                        action="store_true",
                        default=None)
    parser.add_argument("--exclude",
                        dest="EXCLUDE",
                        help="Exclude dependencies matching a group:artifact[:version] pattern (repeatable)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--repository",
                        dest="REPOSITORIES",
                        help="Remote Maven repository URL (repeatable, replaces the default)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--local-repository",
                        dest="LOCAL_REPOSITORIES",
                        help="Local Maven repository directory searched before remote ones (repeatable)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not output the license summary to console.",
                        action="store_true")

    return parser.parse_args(argv)
