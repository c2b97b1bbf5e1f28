"""Walk class archives and directory trees, feeding each class to a reader."""

from __future__ import annotations

import logging
import os
import zipfile
from pathlib import Path, PurePosixPath
from typing import IO, Callable, ContextManager

from dep_graph.analysis.dispatcher import DependenciesListener
from dep_graph.analysis.elements import directory, file_node
from dep_graph.analysis.graph_model import FileSystemRelation, GraphNode
from dep_graph.progress import ProgressListener
from dep_graph.readers.classfile import CLASS_EXTENSION, ClassFileReader, ClassFormatError

LOGGER = logging.getLogger(__name__)

UNIT_ERRORS = (OSError, ClassFormatError, zipfile.BadZipFile)


class _UnitWalker:
    """Shared per-unit bookkeeping for the walkers."""

    extension = CLASS_EXTENSION

    def __init__(self, listener: DependenciesListener, reader: ClassFileReader, progress: ProgressListener) -> None:
        self.listener = listener
        self.reader = reader
        self.progress = progress
        self.cancelled = False

    @property
    def stats(self):
        return self.reader.stats

    def _should_stop(self) -> bool:
        if self.progress.is_cancelled():
            if not self.cancelled:
                LOGGER.info("Analysis cancelled after %d units", self.stats.classes_total)
            self.cancelled = True
        return self.cancelled

    def _visit(
        self,
        label: str,
        open_stream: Callable[[], ContextManager[IO[bytes]]],
        container: GraphNode | None = None,
    ) -> None:
        stats = self.stats
        stats.classes_total += 1
        try:
            with open_stream() as stream:
                data = stream.read()
            self.reader.read(data, self.listener, container)
        except UNIT_ERRORS as exc:
            stats.classes_failed += 1
            LOGGER.warning("Failed to read %s: %s", label, exc)
        else:
            stats.classes_loaded += 1
        self.progress.progress(label, stats.classes_loaded, stats.classes_failed)


class JarFileLister(_UnitWalker):
    """Read every class entry of an open zip/jar archive."""

    def __init__(
        self,
        zip_file: zipfile.ZipFile,
        listener: DependenciesListener,
        reader: ClassFileReader,
        progress: ProgressListener,
    ) -> None:
        super().__init__(listener, reader, progress)
        self.zip_file = zip_file

    def start(self) -> None:
        entries = [
            info for info in self.zip_file.infolist() if not info.is_dir() and info.filename.endswith(self.extension)
        ]
        self.progress.start_progress(f"Reading {self.zip_file.filename or 'archive'}", len(entries))
        for info in entries:
            if self._should_stop():
                break
            self._visit(info.filename, lambda info=info: self.zip_file.open(info))
        self.progress.end_progress(self.stats.classes_loaded, self.stats.classes_failed)


def read_zip_file(
    class_path: str | Path,
    listener: DependenciesListener,
    reader: ClassFileReader,
    progress: ProgressListener,
) -> JarFileLister:
    """Open ``class_path`` as an archive and read all its classes."""

    with zipfile.ZipFile(class_path) as zip_file:
        lister = JarFileLister(zip_file, listener, reader, progress)
        lister.start()
    return lister


def _raise(error: OSError) -> None:
    raise error


class ClassTreeLoader(_UnitWalker):
    """
    Read every class file below a directory.

    Directory and file nodes are named relative to ``tree_prefix`` so the
    analysed root keeps its own name in the graph.
    """

    def __init__(
        self,
        tree_prefix: str | Path,
        listener: DependenciesListener,
        reader: ClassFileReader,
        progress: ProgressListener,
    ) -> None:
        super().__init__(listener, reader, progress)
        self.tree_prefix = Path(tree_prefix)

    def _relative(self, path: Path) -> PurePosixPath:
        try:
            return PurePosixPath(path.relative_to(self.tree_prefix).as_posix())
        except ValueError:
            return PurePosixPath(path.as_posix())

    def analyze_tree(self, root: str | Path) -> None:
        root = Path(root)
        if not root.is_dir():
            raise NotADirectoryError(f"Class tree root is not a directory: {root}")

        self.progress.start_progress(f"Reading {root}", None)
        for current, dirnames, filenames in os.walk(root, onerror=_raise):
            if self._should_stop():
                break
            dirnames.sort()
            current_path = Path(current)
            dir_node = directory(self._relative(current_path))
            for name in dirnames:
                self.listener.new_dep(
                    dir_node, directory(self._relative(current_path / name)), FileSystemRelation.CONTAINS_DIR
                )
            for name in sorted(filenames):
                if not name.endswith(self.extension):
                    continue
                if self._should_stop():
                    break
                path = current_path / name
                class_file = file_node(self._relative(path))
                self.listener.new_dep(dir_node, class_file, FileSystemRelation.CONTAINS_FILE)
                self._visit(str(path), lambda path=path: path.open("rb"), container=class_file)
        self.progress.end_progress(self.stats.classes_loaded, self.stats.classes_failed)


def read_tree(
    class_path: str | Path,
    listener: DependenciesListener,
    reader: ClassFileReader,
    progress: ProgressListener,
) -> ClassTreeLoader:
    """Read a class tree, keeping one level of path above the root."""

    root = Path(class_path).resolve()
    loader = ClassTreeLoader(root.parent, listener, reader, progress)
    loader.analyze_tree(root)
    return loader


__all__ = ["ClassTreeLoader", "JarFileLister", "read_tree", "read_zip_file"]
