# ABOUTME: Shared Click options for metamend CLI commands.
# ABOUTME: Provides reusable decorators for the database path and storage selection.

from pathlib import Path

import click

from metamend.core.reconciler import DRM_VAULTS
from metamend.db.connection import DEFAULT_DB_PATH
from metamend.db.library import DEFAULT_STORAGE_ID

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help=f"Path to the device library database (default: {DEFAULT_DB_PATH})",
)

storage_option = click.option(
    "--storage-id",
    type=int,
    default=DEFAULT_STORAGE_ID,
    show_default=True,
    help="Only fix books stored on this storage (1 is internal memory).",
)

drm_vault_option = click.option(
    "--drm-vault",
    "drm_vaults",
    multiple=True,
    help=f"Folder holding DRM-protected books; repeatable (default: {', '.join(DRM_VAULTS)})",
)
