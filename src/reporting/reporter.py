"""Report writers for the by-dependency and by-license views (XML, HTML, JSON)."""

from __future__ import annotations

import json
import logging
import os
import sys
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, select_autoescape

from constants import ExitCodes
from common.logging_utils import extra_context
from licenses.config import LicenseReportConfig
from licenses.models import ResolutionResult
from .aggregate import by_dependency, by_license

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"


def _write_text(path: str, content: str) -> None:
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(content)
        logger.info("Report written at: %s", path, extra=extra_context(
            event="complete", component="reporter", action="write", target=path
        ))
    except OSError as e:
        logger.error("Report export failed: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def _license_attrs(lic) -> Dict[str, str]:
    attrs = {"name": lic.name}
    if lic.url:
        attrs["url"] = lic.url
    return attrs


def _xml_string(root: ET.Element) -> str:
    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True).decode("utf-8") + "\n"


class LicenseReporter:
    """Writes the two report views into per-format output directories."""

    def __init__(self, xml_output_dir: str, html_output_dir: str, json_output_dir: str):
        self.xml_output_dir = xml_output_dir
        self.html_output_dir = html_output_dir
        self.json_output_dir = json_output_dir
        self._jinja = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)), autoescape=select_autoescape(["html", "xml"]))

    def _render(self, template_name: str, **context: Any) -> str:
        return self._jinja.get_template(template_name).render(**context) + "\n"

    # -- by dependency --

    def generate_xml_report_dependency_to_license(self, result: ResolutionResult, file_name: str) -> str:
        root = ET.Element("dependencies")
        for dep, licenses in by_dependency(result):
            dep_elem = ET.SubElement(root, "dependency", {"name": str(dep)})
            for lic in licenses:
                ET.SubElement(dep_elem, "license", _license_attrs(lic))
        path = os.path.join(self.xml_output_dir, file_name)
        _write_text(path, _xml_string(root))
        return path

    def generate_html_report_dependency_to_license(self, result: ResolutionResult, file_name: str) -> str:
        path = os.path.join(self.html_output_dir, file_name)
        _write_text(path, self._render(
            "dependency_license.html", title="Dependency License Report", rows=by_dependency(result)
        ))
        return path

    def generate_json_report_dependency_to_license(self, result: ResolutionResult, file_name: str) -> str:
        data: Dict[str, Any] = {
            "dependencies": [
                {"name": str(dep), "licenses": [lic.to_dict() for lic in licenses]}
                for dep, licenses in by_dependency(result)
            ]
        }
        path = os.path.join(self.json_output_dir, file_name)
        _write_text(path, json.dumps(data, ensure_ascii=False, indent=2) + "\n")
        return path

    # -- by license --

    def generate_xml_report_license_to_dependency(self, result: ResolutionResult, file_name: str) -> str:
        root = ET.Element("licenses")
        for lic, deps in by_license(result):
            lic_elem = ET.SubElement(root, "license", _license_attrs(lic))
            for dep in deps:
                ET.SubElement(lic_elem, "dependency").text = str(dep)
        path = os.path.join(self.xml_output_dir, file_name)
        _write_text(path, _xml_string(root))
        return path

    def generate_html_report_license_to_dependency(self, result: ResolutionResult, file_name: str) -> str:
        path = os.path.join(self.html_output_dir, file_name)
        _write_text(path, self._render(
            "license_dependency.html", title="License Dependency Report", rows=by_license(result)
        ))
        return path

    def generate_json_report_license_to_dependency(self, result: ResolutionResult, file_name: str) -> str:
        data: Dict[str, Any] = {
            "licenses": [
                dict(lic.to_dict(), dependencies=[str(dep) for dep in deps])
                for lic, deps in by_license(result)
            ]
        }
        path = os.path.join(self.json_output_dir, file_name)
        _write_text(path, json.dumps(data, ensure_ascii=False, indent=2) + "\n")
        return path


def generate_reports(config: LicenseReportConfig, resolver) -> bool:
    """Write every enabled report, resolving licenses lazily.

    Returns:
        False when no report kind or no format is enabled (nothing resolved).
    """
    if (not config.report_by_dependency and not config.report_by_license_type) or (
        not config.xml and not config.html and not config.json
    ):
        logger.info("No license report enabled, skipping")
        return False

    reporter = LicenseReporter(config.xml_destination, config.html_destination, config.json_destination)

    if config.report_by_dependency:
        name = config.report_by_dependency_file_name
        if config.html:
            reporter.generate_html_report_dependency_to_license(resolver.resolve(), name + ".html")
        if config.xml:
            reporter.generate_xml_report_dependency_to_license(resolver.resolve(), name + ".xml")
        if config.json:
            reporter.generate_json_report_dependency_to_license(resolver.resolve(), name + ".json")

    if config.report_by_license_type:
        name = config.report_by_license_file_name
        if config.html:
            reporter.generate_html_report_license_to_dependency(resolver.resolve(), name + ".html")
        if config.xml:
            reporter.generate_xml_report_license_to_dependency(resolver.resolve(), name + ".xml")
        if config.json:
            reporter.generate_json_report_license_to_dependency(resolver.resolve(), name + ".json")
    return True
