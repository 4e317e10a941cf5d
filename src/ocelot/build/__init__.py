"""Build orchestration: bootstrap, page-data export, and the develop loop."""

from ocelot.build.bootstrap import Session, bootstrap, create_pages, create_session, source_nodes
from ocelot.build.develop import ChangeReport, DevelopLoop, develop_site
from ocelot.build.page_data import ExportedPage, ExportResult, PageDataExporter
from ocelot.build.pipeline import BuildResult, build_site

__all__ = [
    "BuildResult",
    "ChangeReport",
    "DevelopLoop",
    "ExportResult",
    "ExportedPage",
    "PageDataExporter",
    "Session",
    "bootstrap",
    "build_site",
    "create_pages",
    "create_session",
    "develop_site",
    "source_nodes",
]
