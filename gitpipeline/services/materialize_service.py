"""
Output materialization for gitpipeline.

Stages the preserved files and the aggregate discovery document in a
hidden scratch directory inside the destination, then swaps the
destination's entries for the staged ones by renaming. The destination is
only touched once staging has fully succeeded, a failed swap puts the
previous entries back, and the scratch directory is removed on every exit
path.
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List

from .discovery_service import DiscoveryResult, dump_document

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = ".gitpipeline-new-"
DISPLACED_PREFIX = ".gitpipeline-old-"


class MaterializeService:
    """
    Service writing the discovery output over the checked-out repository.

    Example:
        service = MaterializeService()
        written = service.materialize(repo_root, discovery_result, destination)
    """

    def __init__(self, indent: int = 2):
        """
        Initialize MaterializeService.

        Args:
            indent: JSON indentation for the aggregate document
        """
        self.indent = indent

    def stage(self, repo_root: Path, result: DiscoveryResult, scratch: Path) -> List[str]:
        """
        Copy preserved files and write the aggregate into scratch.

        Relative paths are kept so references between config files still
        resolve. The aggregate is written last and wins if a pipeline
        reuses the discovery document's path.

        Returns:
            Relative paths written, in order
        """
        written = []
        for relative in result.files:
            target = scratch / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(repo_root / relative, target)
            written.append(relative)

        config_target = scratch / result.config_path
        config_target.parent.mkdir(parents=True, exist_ok=True)
        config_target.write_text(
            dump_document(result.aggregate.to_dict(), result.config_path, self.indent),
            encoding='utf-8'
        )
        if result.config_path not in written:
            written.append(result.config_path)

        return written

    def swap(self, scratch: Path, destination: Path) -> None:
        """
        Replace destination's entries with scratch's entries.

        scratch must be a direct child of destination so every move is a
        rename on one filesystem. On failure the moved entries are returned
        to where they came from and the error is re-raised.
        """
        with tempfile.TemporaryDirectory(prefix=DISPLACED_PREFIX, dir=destination) as displaced_dir:
            displaced = Path(displaced_dir)
            reserved = {scratch.name, displaced.name}
            moved_out: List[str] = []
            moved_in: List[str] = []
            try:
                for entry in sorted(destination.iterdir()):
                    if entry.name in reserved:
                        continue
                    os.replace(entry, displaced / entry.name)
                    moved_out.append(entry.name)
                for entry in sorted(scratch.iterdir()):
                    os.replace(entry, destination / entry.name)
                    moved_in.append(entry.name)
            except OSError:
                logger.error(f"Swap into {destination} failed, restoring previous contents")
                for name in reversed(moved_in):
                    os.replace(destination / name, scratch / name)
                for name in reversed(moved_out):
                    os.replace(displaced / name, destination / name)
                raise

    def materialize(self, repo_root: Path, result: DiscoveryResult, destination: Path) -> List[str]:
        """
        Stage and swap.

        Args:
            repo_root: Checked-out repository to copy from
            result: Discovery result naming the files to keep
            destination: Directory whose contents are replaced

        Returns:
            Relative paths now present in destination
        """
        repo_root = Path(repo_root)
        destination = Path(destination)
        destination.mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryDirectory(prefix=SCRATCH_PREFIX, dir=destination) as scratch_dir:
            scratch = Path(scratch_dir)
            written = self.stage(repo_root, result, scratch)
            logger.debug(f"Staged {len(written)} files in {scratch}")
            self.swap(scratch, destination)

        logger.info(f"Wrote {len(written)} files to {destination}")
        return written
