"""Reading and writing parameter files in OpenCV FileStorage YAML layout."""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from pathlib import Path

import numpy as np
import yaml


class ParameterError(Exception):
    """A parameter file cannot be read, parsed or written."""


_DTYPES = {
    "u": np.uint8,
    "c": np.int8,
    "w": np.uint16,
    "s": np.int16,
    "i": np.int32,
    "f": np.float32,
    "d": np.float64,
}
_CODES = {np.dtype(kind): code for code, kind in _DTYPES.items()}
_MATRIX_TAG = "tag:yaml.org,2002:opencv-matrix"
_HEADER = "%YAML:1.0"


class _Loader(yaml.SafeLoader):
    pass


def _construct_matrix(loader: _Loader, node: yaml.Node) -> np.ndarray:
    spec = loader.construct_mapping(node, deep=True)
    try:
        rows, cols, dt = int(spec["rows"]), int(spec["cols"]), str(spec["dt"])
    except KeyError as exc:
        raise ParameterError(f"matrix entry lacks {exc.args[0]!r}") from None
    match = re.fullmatch(r"(\d*)([ucwsifd])", dt)
    if match is None:
        raise ParameterError(f"unsupported matrix element type {dt!r}")
    channels = int(match.group(1) or 1)
    data = np.asarray(spec.get("data") or [], dtype=_DTYPES[match.group(2)])
    shape = (rows, cols) if channels == 1 else (rows, cols, channels)
    try:
        return data.reshape(shape)
    except ValueError:
        raise ParameterError(f"matrix data does not fill {rows}x{cols}") from None


_Loader.add_constructor(_MATRIX_TAG, _construct_matrix)


def read_opencv_yaml(path) -> dict:
    """Load a FileStorage YAML file; matrices become numpy arrays."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ParameterError(f"can't open {path}") from exc
    text = re.sub(r"\A%YAML:[^\n]*\n", "", text)
    try:
        document = yaml.load(text, Loader=_Loader)
    except yaml.YAMLError as exc:
        raise ParameterError(f"can't parse {path}: {exc}") from exc
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ParameterError(f"{path} does not hold a mapping")
    return document


def _format_float(value: float) -> str:
    if math.isnan(value):
        return ".nan"
    if math.isinf(value):
        return ".inf" if value > 0 else "-.inf"
    text = f"{value:.17g}"
    mantissa, _, exponent = text.partition("e")
    if "." not in mantissa:
        mantissa += "."
    return f"{mantissa}e{exponent}" if exponent else mantissa


def _format_scalar(value) -> str:
    if isinstance(value, (bool, np.bool_)):
        return str(int(value))
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    if isinstance(value, (float, np.floating)):
        return _format_float(float(value))
    if isinstance(value, str):
        return json.dumps(value)
    raise TypeError(f"cannot store value of type {type(value).__name__}")


def _format_matrix(name: str, matrix: np.ndarray) -> list[str]:
    if matrix.ndim == 1:
        matrix = matrix.reshape(-1, 1)
    if matrix.ndim not in (2, 3):
        raise TypeError("only 1-, 2- and 3-dimensional arrays can be stored")
    if matrix.dtype in _CODES:
        code = _CODES[matrix.dtype]
    elif matrix.dtype.kind in "iub":
        matrix, code = matrix.astype(np.int32), "i"
    elif matrix.dtype.kind == "f":
        matrix, code = matrix.astype(np.float64), "d"
    else:
        raise TypeError(f"cannot store array of dtype {matrix.dtype}")
    channels = matrix.shape[2] if matrix.ndim == 3 else 1
    dt = code if channels == 1 else f"{channels}{code}"
    data = ", ".join(_format_scalar(v) for v in matrix.ravel().tolist())
    return [
        f"{name}: !!opencv-matrix",
        f"   rows: {matrix.shape[0]}",
        f"   cols: {matrix.shape[1]}",
        f"   dt: {dt}",
        f"   data: [ {data} ]" if data else "   data: []",
    ]


def _format_entry(name: str, value) -> list[str]:
    if isinstance(value, np.ndarray):
        return _format_matrix(name, value)
    if isinstance(value, (list, tuple)):
        return [f"{name}: [ " + ", ".join(_format_scalar(v) for v in value) + " ]"]
    return [f"{name}: {_format_scalar(value)}"]


def write_opencv_yaml(path, entries: Mapping) -> None:
    """Write named scalars, strings, lists and arrays as a FileStorage YAML file."""
    lines = [_HEADER, "---"]
    for name, value in entries.items():
        lines.extend(_format_entry(str(name), value))
    try:
        Path(path).write_text("\n".join(lines) + "\n", encoding="utf-8")
    except OSError as exc:
        raise ParameterError(f"Write file failed: {path}") from exc