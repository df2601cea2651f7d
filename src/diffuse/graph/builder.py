"""Build the cross-file usage graph of a JS/TS codebase."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

import networkx as nx

from diffuse.config import ResolvedConfig, get_default_config
from diffuse.constants import SUPPORTED_EXTENSIONS
from diffuse.exceptions import ParserError
from diffuse.filters import FileFilter
from diffuse.parser.core import collect_files, parse_module, read_source

logger = logging.getLogger("diffuse.graph")

# Directory keyword -> subsystem tag, first match wins
SUBSYSTEM_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("components", "UI"),
    ("lib", "Library"),
    ("hooks", "Hooks"),
    ("pages", "Pages"),
    ("api", "API"),
)

NODE_BUILTINS = frozenset({
    "assert", "buffer", "child_process", "crypto", "dns", "events", "fs", "http",
    "https", "net", "os", "path", "process", "querystring", "readline", "stream",
    "string_decoder", "timers", "tls", "url", "util", "worker_threads", "zlib",
})


@dataclass
class ImportEdge:
    """An import recorded on the importing node."""

    source: str
    symbols: list[str] = field(default_factory=list)


@dataclass
class GraphNode:
    """Read-only view of one file in the usage graph."""

    path: str
    exports: set[str] = field(default_factory=set)
    imports: list[ImportEdge] = field(default_factory=list)
    imported_by: list[str] = field(default_factory=list)
    subsystems: set[str] = field(default_factory=set)
    partial: bool = False


def infer_subsystem(file_path: str, root: str | Path) -> str:
    """Tag a file with the app area it belongs to, from its directory names."""
    try:
        rel = Path(file_path).relative_to(root)
    except ValueError:
        rel = Path(file_path)
    dirs = PurePosixPath(rel.as_posix()).parts[:-1]

    for keyword, tag in SUBSYSTEM_KEYWORDS:
        if keyword in dirs:
            return tag
    return dirs[1] if len(dirs) > 1 else "root"


class UsageGraph:
    """Directed import graph over canonical absolute paths.

    Paths are interned to integer indices; nodes of the underlying
    ``nx.DiGraph`` are those indices and an edge ``a -> b`` means file ``a``
    imports file ``b``. Predecessors of a node are therefore its dependents,
    kept in the order they were first seen.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()
        self.graph = nx.DiGraph()
        self._index: dict[str, int] = {}
        self._paths: list[str] = []

    def key(self, path: str | Path) -> str:
        """Canonical absolute path for a repo-relative or absolute path."""
        p = Path(path)
        if not p.is_absolute():
            p = self.root / p
        return os.path.normpath(str(p))

    def relative(self, path: str) -> str:
        try:
            return Path(path).relative_to(self.root).as_posix()
        except ValueError:
            return path

    def intern(self, path: str | Path) -> int:
        """Index of `path`, creating its node on first sight."""
        key = self.key(path)
        idx = self._index.get(key)
        if idx is None:
            idx = len(self._paths)
            self._index[key] = idx
            self._paths.append(key)
            self.graph.add_node(
                idx, path=key, exports=set(), imports=[], subsystems=set(), partial=False
            )
        return idx

    def index_of(self, path: str | Path) -> int | None:
        return self._index.get(self.key(path))

    def __contains__(self, path: object) -> bool:
        return isinstance(path, (str, Path)) and self.index_of(path) is not None

    def __len__(self) -> int:
        return len(self._paths)

    @property
    def paths(self) -> list[str]:
        return list(self._paths)

    def path_of(self, idx: int) -> str:
        return self._paths[idx]

    def set_exports(self, path: str, names: set[str]) -> None:
        self.graph.nodes[self.intern(path)]["exports"] = set(names)

    def mark_partial(self, path: str) -> None:
        self.graph.nodes[self.intern(path)]["partial"] = True

    def add_import(self, importer: str, target: str, symbols: list[str]) -> None:
        """Record that `importer` imports `symbols` from `target`."""
        src = self.intern(importer)
        dst = self.intern(target)
        self.graph.nodes[src]["imports"].append(ImportEdge(source=self.path_of(dst), symbols=list(symbols)))

        # A file importing itself is not its own dependent.
        if src == dst:
            return

        if self.graph.has_edge(src, dst):
            self.graph.edges[src, dst]["symbols"].extend(symbols)
        else:
            self.graph.add_edge(src, dst, symbols=list(symbols))
        self.graph.nodes[dst]["subsystems"].add(infer_subsystem(self.path_of(src), self.root))

    def imported_by(self, path: str | Path) -> list[str]:
        idx = self.index_of(path)
        if idx is None:
            return []
        return [self._paths[p] for p in self.graph.predecessors(idx)]

    def node(self, path: str | Path) -> GraphNode | None:
        idx = self.index_of(path)
        if idx is None:
            return None
        data = self.graph.nodes[idx]
        return GraphNode(
            path=data["path"],
            exports=set(data["exports"]),
            imports=list(data["imports"]),
            imported_by=self.imported_by(path),
            subsystems=set(data["subsystems"]),
            partial=data["partial"],
        )

    def stats(self) -> dict[str, int]:
        return {
            "files": self.graph.number_of_nodes(),
            "edges": self.graph.number_of_edges(),
            "partial": sum(1 for _, d in self.graph.nodes(data=True) if d["partial"]),
        }


class ModuleResolver:
    """Resolves import specifiers to files on disk."""

    def __init__(self, root: str | Path, extensions: tuple[str, ...] = SUPPORTED_EXTENSIONS) -> None:
        self.root = Path(root).resolve()
        self.extensions = extensions

    def resolve(self, specifier: str, importer: str | Path) -> str | None:
        """Absolute path of the file `specifier` refers to, or None."""
        if specifier.startswith("."):
            base = Path(importer).parent / specifier
        elif specifier.startswith("/"):
            base = Path(specifier)
        else:
            # baseUrl-style import relative to the repository root
            base = self.root / specifier

        for candidate in self._candidates(base):
            if candidate.is_file():
                return os.path.normpath(str(candidate))
        return None

    def is_external(self, specifier: str) -> bool:
        """True for node builtins and packages installed under node_modules."""
        if specifier.startswith((".", "/")):
            return False
        if specifier.startswith("node:"):
            return True

        parts = specifier.split("/")
        package = "/".join(parts[:2]) if specifier.startswith("@") else parts[0]
        if package in NODE_BUILTINS:
            return True
        return (self.root / "node_modules" / package).exists()

    def _candidates(self, base: Path) -> list[Path]:
        candidates = []
        if base.suffix in self.extensions:
            candidates.append(base)
        candidates.extend(Path(f"{base}{ext}") for ext in self.extensions)
        # ESM-style imports name the compiled .js file
        if base.suffix in (".js", ".jsx"):
            stem = base.with_suffix("")
            candidates.extend(Path(f"{stem}{ext}") for ext in (".ts", ".tsx"))
        candidates.extend(base / f"index{ext}" for ext in self.extensions)
        return candidates


class UsageGraphBuilder:
    """Builds a UsageGraph from the in-scope source files of a repository.

    Test files, excluded paths and unsupported extensions never become
    importers. Imports that cannot be resolved mark the importing file as
    partial; the build itself never fails because of one file.
    """

    def __init__(
        self,
        root: str | Path,
        config: ResolvedConfig | None = None,
        file_filter: FileFilter | None = None,
    ) -> None:
        self.root = Path(root).resolve()
        self.config = config or get_default_config()
        self.file_filter = file_filter or FileFilter.from_config(self.config)
        self.resolver = ModuleResolver(self.root)

    def build(self, files: list[str] | None = None) -> UsageGraph:
        """Build the graph.

        Args:
            files: Repo-relative paths to consider. Defaults to every
                supported file under the root.

        Returns:
            The usage graph.
        """
        if files is None:
            files = collect_files(self.root, self.file_filter)

        in_scope = [f for f in files if self.file_filter.should_include(f)]
        max_files = self.config.analysis.max_files_in_graph
        if max_files is not None and len(in_scope) > max_files:
            logger.info(f"Limiting usage graph to {max_files} of {len(in_scope)} files")
            in_scope = in_scope[:max_files]

        graph = UsageGraph(self.root)
        for rel_path in in_scope:
            self._add_file(graph, rel_path)

        stats = graph.stats()
        logger.info(
            f"Usage graph: {stats['files']} files, {stats['edges']} edges, "
            f"{stats['partial']} partial"
        )
        return graph

    def _add_file(self, graph: UsageGraph, rel_path: str) -> None:
        abs_path = graph.key(rel_path)
        source = read_source(abs_path)
        if source is None:
            logger.warning(f"Skipping unreadable file: {rel_path}")
            return

        try:
            symbols = parse_module(rel_path, source)
        except ParserError as e:
            logger.warning(f"Skipping {rel_path}: {e}")
            return

        graph.set_exports(abs_path, symbols.export_names)

        for imp in symbols.imports:
            if imp.specifier is None:
                graph.mark_partial(abs_path)
                logger.debug(f"Non-literal module specifier in {rel_path}:{imp.line}")
                continue

            target = self.resolver.resolve(imp.specifier, abs_path)
            if target is None:
                if not self.resolver.is_external(imp.specifier):
                    graph.mark_partial(abs_path)
                    logger.debug(f"Could not resolve import '{imp.specifier}' in {rel_path}")
                continue

            graph.add_import(abs_path, target, imp.symbols)
