"""
Per-site filesystem layout.

Every site lives under ``<sites_base>/<slug>``. These helpers only build
paths; none of them touch the filesystem.
"""

import os

DB_FILENAME = "site.db"


def site_base_path(sites_base: str, slug: str) -> str:
    return os.path.join(sites_base, slug)


def site_db_path(sites_base: str, slug: str) -> str:
    return os.path.join(site_base_path(sites_base, slug), "db", DB_FILENAME)


def site_db_dsn(sites_base: str, slug: str) -> str:
    """SQLite DSN for the site's database."""
    return f"file:{site_db_path(sites_base, slug)}?cache=shared&mode=rwc"


def site_docs_path(sites_base: str, slug: str) -> str:
    return os.path.join(site_base_path(sites_base, slug), "documents")


def site_markdown_path(sites_base: str, slug: str) -> str:
    return os.path.join(site_docs_path(sites_base, slug), "markdown")


def site_html_path(sites_base: str, slug: str) -> str:
    """Root of the site's materialized tree."""
    return os.path.join(site_docs_path(sites_base, slug), "html")


def site_assets_path(sites_base: str, slug: str) -> str:
    return os.path.join(site_docs_path(sites_base, slug), "assets")


def site_images_path(sites_base: str, slug: str) -> str:
    return os.path.join(site_assets_path(sites_base, slug), "images")


def site_publish_path(sites_base: str, slug: str) -> str:
    """Working clone used by the publisher."""
    return os.path.join(site_base_path(sites_base, slug), "publish")
