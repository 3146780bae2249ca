import os
import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from cacheHandling import delete_files
from config import OUTPUT_SUFFIX, PARTIAL_SUFFIX, PROGRESS_INTERVAL_LINES
from logUtils import log_with_timestamp
from objErrors import IOFailure, MalformedVertexLine, PathUnreadable

VERTEX_TOKEN = "v"
UTF8_BOM = b"\xef\xbb\xbf"


@dataclass(frozen=True)
class ProgressEvent:
    """Fraction of a file converted so far; error is set when the conversion was abandoned."""
    path: str
    fraction: float
    error: Optional[str] = None

    @property
    def failed(self):
        return self.error is not None

    @property
    def done(self):
        return self.error is None and self.fraction >= 1.0

    @property
    def terminal(self):
        return self.failed or self.done


@dataclass
class ConversionResult:
    source: str
    output: str
    lines: int = 0
    vertices: int = 0
    bytes_read: int = 0
    duration: float = 0.0


def translate_line(line, offset):
    """
    Translate one OBJ line by offset.

    Vertex position lines ('v x y z [w | r g b]') get the offset added to the
    first three fields, every other line is returned unchanged. Fields after
    the third are kept as written.

    Raises:
        MalformedVertexLine: fewer than three fields, or a field that is not
            a finite number
    """
    parts = line.split()
    if not parts or parts[0] != VERTEX_TOKEN:
        return line

    if len(parts) < 4:
        raise MalformedVertexLine(line, f"expected 3 coordinates, got {len(parts) - 1}")

    try:
        coords = np.array(parts[1:4], dtype=np.float64)
    except ValueError as e:
        raise MalformedVertexLine(line, str(e)) from e

    if not np.isfinite(coords).all():
        raise MalformedVertexLine(line, "non-finite coordinate")

    # float64 throughout; single precision loses centimetres at UTM magnitudes
    x, y, z = coords + offset.vector
    translated = f"{VERTEX_TOKEN} {float(x)!r} {float(y)!r} {float(z)!r}"
    if len(parts) > 4:
        translated += " " + " ".join(parts[4:])
    return translated


def output_path_for(source, suffix=OUTPUT_SUFFIX):
    """name.obj -> name_tr.obj, in the same directory."""
    directory, filename = os.path.split(str(source))
    stem, ext = os.path.splitext(filename)
    return os.path.join(directory, f"{stem}{suffix}{ext}")


def _strip_terminator(raw):
    if raw.endswith(b"\r\n"):
        return raw[:-2]
    if raw.endswith(b"\n"):
        return raw[:-1]
    return raw


def transform_obj_coordinates(input_obj, offset, progress: Optional[Callable[[ProgressEvent], None]] = None,
                              interval=PROGRESS_INTERVAL_LINES, suffix=OUTPUT_SUFFIX):
    """
    Stream input_obj into its translated copy, line by line.

    The output is written to '<output>.partial' and renamed into place once the
    last line is written, replacing any existing output. On error the partial
    file is deleted and the error is raised; no 1.0 progress event is emitted
    in that case.

    Args:
        input_obj (str): Source OBJ file
        offset (Offset): Vector added to every vertex
        progress (callable): Receives ProgressEvent instances
        interval (int): Emit progress every `interval` lines
        suffix (str): Stem suffix of the output file

    Returns:
        ConversionResult

    Raises:
        PathUnreadable: the source cannot be opened
        MalformedVertexLine: a vertex line cannot be parsed
        IOFailure: read or write error while streaming
    """
    if interval < 1:
        raise ValueError(f"Progress interval must be positive, got {interval}")

    source = str(input_obj)
    output_obj = output_path_for(source, suffix)
    partial_obj = output_obj + PARTIAL_SUFFIX
    result = ConversionResult(source=source, output=output_obj)
    start = time.time()

    try:
        total_bytes = os.path.getsize(source)
        infile = open(source, 'rb')
    except OSError as e:
        raise PathUnreadable(source, e.strerror or e) from e

    last_fraction = 0.0
    try:
        with infile, open(partial_obj, 'wb') as outfile:
            for raw in infile:
                result.lines += 1
                result.bytes_read += len(raw)
                content = _strip_terminator(raw)
                if result.lines == 1 and content.startswith(UTF8_BOM):
                    # keep the BOM, but classify the line without it
                    outfile.write(UTF8_BOM)
                    content = content[len(UTF8_BOM):]

                if content.lstrip()[:1] == b"v":
                    text = content.decode('utf-8', 'surrogateescape')
                    try:
                        translated = translate_line(text, offset)
                    except MalformedVertexLine as e:
                        e.line_number = result.lines
                        raise
                    if translated is not text:
                        result.vertices += 1
                        content = translated.encode('utf-8', 'surrogateescape')

                outfile.write(content)
                outfile.write(b"\n")

                if progress is not None and result.lines % interval == 0 and total_bytes:
                    fraction = min(result.bytes_read / total_bytes, 1.0)
                    # 1.0 is reserved for the final event
                    if last_fraction < fraction < 1.0:
                        last_fraction = fraction
                        progress(ProgressEvent(source, fraction))

        os.replace(partial_obj, output_obj)
    except OSError as e:
        delete_files([partial_obj])
        raise IOFailure(source, e.strerror or e) from e
    except BaseException:
        delete_files([partial_obj])
        raise

    result.duration = time.time() - start
    if progress is not None:
        progress(ProgressEvent(source, 1.0))

    log_with_timestamp(
        f"Transformed OBJ file saved to: {output_obj} "
        f"({result.vertices} vertices, {result.lines} lines, {result.duration:.2f}s)"
    )
    return result
