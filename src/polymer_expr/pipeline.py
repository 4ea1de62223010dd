"""File-unit pipeline around the binding transformer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Iterable, Iterator, List, Optional, Union

from polymer_expr.compiler.exceptions import (
    PluginError,
    PolymerExprError,
    StreamingNotSupportedError,
)
from polymer_expr.compiler.transform import BindingTransformer, TransformResult
from polymer_expr.config import TransformOptions

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES = (".html", ".htm")

Contents = Union[bytes, IO[bytes], None]


@dataclass
class SourceFile:
    """One unit of work: a path plus its (optional) contents.

    ``base`` is the source root the file was found under; it decides the
    file's relative name when writing to an output directory.
    """

    path: Path
    contents: Contents = None
    base: Optional[Path] = None

    @property
    def is_null(self) -> bool:
        return self.contents is None

    @property
    def relative_path(self) -> Path:
        if self.base is None:
            return Path(self.path.name)
        try:
            return self.path.relative_to(self.base)
        except ValueError:
            return Path(self.path.name)


@dataclass
class ProcessedFile:
    file: SourceFile
    result: Optional[TransformResult] = None
    error: Optional[PluginError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def changed(self) -> bool:
        return self.result is not None and self.result.changed


@dataclass
class PipelineSummary:
    processed: List[ProcessedFile] = field(default_factory=list)

    @property
    def failed(self) -> List[ProcessedFile]:
        return [p for p in self.processed if not p.ok]

    @property
    def changed(self) -> List[ProcessedFile]:
        return [p for p in self.processed if p.changed]


def process_file(
    file: SourceFile, options: Optional[TransformOptions] = None
) -> Optional[TransformResult]:
    """Transform ``file`` in place.

    Files without contents pass through untouched and return None.

    Raises:
        PluginError: for stream contents and for any transform failure.
    """
    if file.is_null:
        return None

    path = str(file.path)
    contents = file.contents
    if not isinstance(contents, (bytes, bytearray)):
        error = StreamingNotSupportedError(path)
        raise PluginError(str(error), path) from error

    try:
        html = bytes(contents).decode("utf-8")
        result = BindingTransformer(options).transform(html, file_path=path)
    except PolymerExprError as e:
        raise PluginError(str(e), path) from e
    except Exception as e:
        raise PluginError(f"{type(e).__name__}: {e}", path) from e

    file.contents = result.text.encode("utf-8")
    return result


def process_files(
    files: Iterable[SourceFile], options: Optional[TransformOptions] = None
) -> Iterator[ProcessedFile]:
    """Process each file, reporting failures per file without stopping."""
    for file in files:
        try:
            result = process_file(file, options)
        except PluginError as e:
            logger.debug(f"Failed: {e}")
            yield ProcessedFile(file=file, error=e)
            continue
        yield ProcessedFile(file=file, result=result)


def run_pipeline(
    files: Iterable[SourceFile], options: Optional[TransformOptions] = None
) -> PipelineSummary:
    return PipelineSummary(processed=list(process_files(files, options)))


def _is_source(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in SOURCE_SUFFIXES


def load_source_files(paths: Iterable[Union[str, Path]]) -> List[SourceFile]:
    """Read markup files, descending into directories.

    Hidden entries (leading ``.``) inside directories are skipped.
    """
    files: List[SourceFile] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            for entry in sorted(path.rglob("*")):
                relative = entry.relative_to(path)
                if any(part.startswith(".") for part in relative.parts):
                    continue
                if _is_source(entry):
                    files.append(
                        SourceFile(path=entry, contents=entry.read_bytes(), base=path)
                    )
        elif path.is_file():
            files.append(
                SourceFile(path=path, contents=path.read_bytes(), base=path.parent)
            )
        else:
            raise FileNotFoundError(f"No such file or directory: {path}")
    return files


def write_source_file(file: SourceFile, out_dir: Optional[Path] = None) -> Path:
    """Write ``file`` back in place, or under ``out_dir`` by relative name."""
    target = file.path if out_dir is None else out_dir / file.relative_path
    target.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(file.contents, (bytes, bytearray)):
        target.write_bytes(bytes(file.contents))
    return target
