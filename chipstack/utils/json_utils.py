"""JSON helpers for result and config files: sanitising and atomic writes."""

import json
import math
import os
import tempfile
from pathlib import Path

import numpy as np


def sanitize_for_json(obj):
    """Recursively turn numpy scalars into Python ones and NaN/inf into None.

    White point channels and sharpness come out of numpy reductions, and
    ``json.dump`` would write a float NaN as the non-standard ``NaN`` token.
    """
    if isinstance(obj, dict):
        return {k: sanitize_for_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [sanitize_for_json(v) for v in obj]
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, (float, np.floating)):
        v = float(obj)
        return None if (math.isnan(v) or math.isinf(v)) else v
    return obj


def atomic_json_dump(data, filepath, indent=2):
    """Write sanitised JSON via a temp file and os.replace().

    The target either holds the complete document or is left untouched.

    Returns:
        Path of the written file.
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    data = sanitize_for_json(data)

    fd, tmp_path = tempfile.mkstemp(dir=filepath.parent, suffix='.tmp')
    try:
        with os.fdopen(fd, 'w') as f:
            json.dump(data, f, indent=indent)
        os.replace(tmp_path, filepath)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return filepath
