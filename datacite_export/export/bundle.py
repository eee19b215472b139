"""Packaging of several export files into one gzip-compressed tar bundle."""

import gzip
import logging
import os
import tarfile
from typing import Sequence

logger = logging.getLogger(__name__)

# Fixed archive timestamp so identical inputs produce identical bundles
BUNDLE_MTIME = 0


class PackagingError(Exception):
    """Raised when the export bundle cannot be written."""
    pass


def create_bundle(files: Sequence[str], output_path: str) -> str:
    """
    Package export files into ``output_path`` (a .tar.gz).

    Only the file basenames are stored, owned by uid/gid 0 without user or
    group names, so the bundle does not reveal the server's export directory
    or account. A single file is passed through without packaging.

    Args:
        files: Paths of the files to package
        output_path: Path of the bundle to write

    Returns:
        Path of the bundle, or of the single input file

    Raises:
        PackagingError: If no files are given, two files share a basename,
            or the archive cannot be written
    """
    if not files:
        raise PackagingError("Nothing to package: no export files were produced")
    if len(files) == 1:
        return files[0]

    names = [os.path.basename(path) for path in files]
    if len(set(names)) != len(names):
        raise PackagingError("Export files with identical names cannot be packaged together")

    try:
        with gzip.GzipFile(output_path, mode='wb', mtime=BUNDLE_MTIME) as gz:
            with tarfile.open(fileobj=gz, mode='w') as tar:
                for path, name in zip(files, names):
                    info = tar.gettarinfo(path, arcname=name)
                    info.uid = info.gid = 0
                    info.uname = info.gname = ""
                    info.mtime = BUNDLE_MTIME
                    with open(path, 'rb') as f:
                        tar.addfile(info, f)
    except (OSError, tarfile.TarError) as e:
        logger.error(f"Failed to create export bundle {output_path}: {e}")
        raise PackagingError(f"Could not create export bundle: {str(e)}")

    logger.info(f"Packaged {len(files)} export files into {output_path}")
    return output_path
