"""
Path resolution against the configured workspace

EnergyPlus Model Context Protocol Server (EnergyPlus-MCP)
Copyright (c) 2025, The Regents of the University of California,
through Lawrence Berkeley National Laboratory (subject to receipt of
any required approvals from the U.S. Dept. of Energy). All rights reserved.
"""

import os
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)


def _search_dirs(config, file_types: Optional[List[str]]) -> List[str]:
    dirs = [
        config.paths.sample_files_path,
        config.paths.workspace_root,
        config.paths.output_dir,
    ]
    if file_types and ".idf" in [ft.lower() for ft in file_types]:
        dirs.append(config.energyplus.example_files_path)
    dirs.append(os.getcwd())
    return [d for d in dirs if d]


def resolve_path(
    config,
    path: Optional[str],
    file_types: Optional[List[str]] = None,
    description: str = "file",
    must_exist: bool = True,
    default_dir: Optional[str] = None
) -> str:
    """
    Resolve a user-supplied path to an absolute one

    Absolute paths are used as given. Relative paths are searched for in
    sample_files, the workspace root, outputs, (for IDFs) the EnergyPlus
    example files, and the current directory. With ``must_exist=False``
    a bare filename is placed in ``default_dir`` (outputs by default) and
    a relative path with directories is placed under the workspace root.

    Raises:
        ValueError: empty path or an extension not in ``file_types``
        FileNotFoundError: ``must_exist`` and nothing was found
    """
    if not path:
        raise ValueError(f"Path for {description} cannot be empty")

    if file_types:
        ext = os.path.splitext(path)[1].lower()
        if ext not in [ft.lower() for ft in file_types]:
            raise ValueError(
                f"Invalid {description} '{path}': expected extension {', '.join(file_types)}"
            )

    if os.path.isabs(path):
        if must_exist and not os.path.exists(path):
            raise FileNotFoundError(f"{description.capitalize()} not found: {path}")
        return path

    if not must_exist:
        if os.sep in path or (os.altsep and os.altsep in path):
            return os.path.join(config.paths.workspace_root, path)
        return os.path.join(default_dir or config.paths.output_dir, path)

    for directory in _search_dirs(config, file_types):
        candidate = os.path.join(directory, path)
        if os.path.exists(candidate):
            resolved = os.path.abspath(candidate)
            logger.debug(f"Resolved {description} '{path}' -> {resolved}")
            return resolved

    raise FileNotFoundError(f"{description.capitalize()} '{path}' not found in workspace")
