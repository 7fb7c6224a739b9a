"""tqdm progress bar wired to the codec's per-chunk progress hook."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from tqdm import tqdm

from encsync.security.crypto import ProgressHook


@contextmanager
def file_progress(path: Path | str, desc: str, enabled: bool = True) -> Iterator[Optional[ProgressHook]]:
    """Yield a progress hook sized to ``path``, or None when disabled."""
    if not enabled:
        yield None
        return
    try:
        total = Path(path).stat().st_size
    except OSError:
        # unknown size; the codec reports the real error when it opens the file
        total = None
    with tqdm(total=total, desc=desc, unit="B", unit_scale=True, leave=False) as bar:
        yield bar.update
