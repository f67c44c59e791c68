from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from maven_pin.generator import GeneratedRepository


logger = logging.getLogger(__name__)


def write_repository(generated: GeneratedRepository, out_dir: Path) -> list[Path]:
    """Write all generated files, or none of them.

    Files are rendered into a staging directory beside `out_dir`, which then
    replaces `out_dir`. A previous `out_dir` is removed only after the staging
    directory is complete.

    Returns:
        The written file paths, relative to `out_dir`.
    """
    out_dir = out_dir.resolve()
    out_dir.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{out_dir.name}-", dir=out_dir.parent))
    written: list[Path] = []
    try:
        for relative, content in generated.files().items():
            path = staging / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
            written.append(Path(relative))

        if out_dir.exists():
            backup = Path(tempfile.mkdtemp(prefix=f".{out_dir.name}-old-", dir=out_dir.parent))
            os.replace(out_dir, backup / out_dir.name)
            try:
                os.replace(staging, out_dir)
            except OSError:
                os.replace(backup / out_dir.name, out_dir)
                raise
            finally:
                if out_dir.exists():
                    shutil.rmtree(backup, ignore_errors=True)
        else:
            os.replace(staging, out_dir)
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise

    logger.info("Wrote %d files to %s", len(written), out_dir)
    return written
