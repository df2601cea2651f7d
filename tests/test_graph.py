"""Tests for the usage graph, its queries and graph scoring."""

from __future__ import annotations

from diffuse.config import get_default_config, resolve_config
from diffuse.constants import RiskFactor
from diffuse.graph.builder import (
    ModuleResolver,
    UsageGraph,
    UsageGraphBuilder,
    infer_subsystem,
)
from diffuse.graph.query import (
    blast_radius,
    max_dependency_depth,
    subsystem_spread,
    transitive_dependents,
)
from diffuse.graph.scoring import score_graph
from diffuse.vcs.github import RenderContext


FORMAT = "src/lib/format.ts"
HEADER = "src/components/Header.tsx"
HOME = "src/pages/home.ts"
CLIENT = "src/api/client.ts"
MATH = "src/utils/math.ts"


class TestUsageGraphBuilder:
    def test_builds_nodes(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        assert len(graph) == 5
        assert FORMAT in graph
        assert "tests/format.test.ts" not in graph

    def test_imported_by(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        importers = [graph.relative(p) for p in graph.imported_by(FORMAT)]
        assert importers == [CLIENT, HEADER, HOME]
        assert [graph.relative(p) for p in graph.imported_by(HEADER)] == [HOME]
        assert graph.imported_by(MATH) == []

    def test_exports_recorded(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        assert graph.node(FORMAT).exports == {"User", "formatName", "VERSION"}

    def test_subsystems(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        assert graph.node(FORMAT).subsystems == {"API", "UI", "Pages"}
        assert graph.node(HEADER).subsystems == {"Pages"}

    def test_dynamic_import_marks_partial(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        assert graph.node(CLIENT).partial
        assert not graph.node(FORMAT).partial

    def test_unresolved_relative_import_marks_partial(self, tmp_project):
        (tmp_project / "src" / "utils" / "math.ts").write_text('import { x } from "./missing";\n')
        graph = UsageGraphBuilder(tmp_project).build()
        assert graph.node(MATH).partial

    def test_max_files_in_graph(self, tmp_project):
        config = resolve_config({"analysis": {"maxFilesInGraph": 2}})
        graph = UsageGraphBuilder(tmp_project, config).build()
        assert graph.node(HOME) is None
        assert graph.node(MATH) is None
        assert graph.node(FORMAT) is not None

    def test_test_files_never_import(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build(
            ["src/lib/format.ts", "tests/format.test.ts"]
        )
        assert graph.imported_by(FORMAT) == []


class TestUsageGraph:
    def test_self_import_is_not_a_dependent(self, tmp_path):
        graph = UsageGraph(tmp_path)
        graph.add_import("src/a.ts", "src/a.ts", ["a"])
        assert graph.imported_by("src/a.ts") == []
        assert blast_radius(graph, "src/a.ts") == 0

    def test_paths_are_canonical(self, tmp_path):
        graph = UsageGraph(tmp_path)
        graph.add_import("src/b.ts", "src/lib/../a.ts", ["a"])
        assert graph.index_of(tmp_path / "src" / "a.ts") is not None
        assert graph.imported_by("src/a.ts") == [graph.key("src/b.ts")]

    def test_repeated_import_keeps_one_edge(self, tmp_path):
        graph = UsageGraph(tmp_path)
        graph.add_import("src/b.ts", "src/a.ts", ["x"])
        graph.add_import("src/b.ts", "src/a.ts", ["y"])
        assert graph.graph.number_of_edges() == 1
        assert blast_radius(graph, "src/a.ts") == 1

    def test_unknown_file(self, tmp_path):
        graph = UsageGraph(tmp_path)
        assert graph.node("nope.ts") is None
        assert "nope.ts" not in graph


class TestBlastRadius:
    def test_transitive(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        # client + Header + home directly, home again through Header
        assert blast_radius(graph, FORMAT) == 4
        assert blast_radius(graph, HEADER) == 1

    def test_no_importers(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        assert blast_radius(graph, MATH) == 0
        assert blast_radius(graph, "src/unknown.ts") == 0

    def test_cycle_terminates(self, tmp_path):
        graph = UsageGraph(tmp_path)
        graph.add_import("a.ts", "b.ts", [])
        graph.add_import("b.ts", "a.ts", [])
        assert blast_radius(graph, "a.ts") == 2

    def test_monotonic_under_edge_addition(self, tmp_path):
        graph = UsageGraph(tmp_path)
        graph.add_import("b.ts", "a.ts", [])
        graph.add_import("c.ts", "b.ts", [])
        before = blast_radius(graph, "a.ts")
        graph.add_import("d.ts", "c.ts", [])
        graph.add_import("d.ts", "a.ts", [])
        assert blast_radius(graph, "a.ts") >= before
        assert blast_radius(graph, "a.ts") == 4

    def test_transitive_dependents(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        deps = [graph.relative(d) for d in transitive_dependents(graph, FORMAT)]
        assert deps == [CLIENT, HEADER, HOME]

    def test_depth(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        assert max_dependency_depth(graph, FORMAT) == 1
        assert max_dependency_depth(graph, MATH) == 0

    def test_depth_chain(self, tmp_path):
        graph = UsageGraph(tmp_path)
        graph.add_import("b.ts", "a.ts", [])
        graph.add_import("c.ts", "b.ts", [])
        assert max_dependency_depth(graph, "a.ts") == 2

    def test_subsystem_spread(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        assert subsystem_spread(graph, FORMAT) == 3
        assert subsystem_spread(graph, MATH) == 0


class TestSubsystems:
    def test_keywords(self, tmp_path):
        assert infer_subsystem(str(tmp_path / "src/components/Button.tsx"), tmp_path) == "UI"
        assert infer_subsystem(str(tmp_path / "src/hooks/useX.ts"), tmp_path) == "Hooks"
        assert infer_subsystem(str(tmp_path / "app/api/route.ts"), tmp_path) == "API"

    def test_fallback_second_directory(self, tmp_path):
        assert infer_subsystem(str(tmp_path / "src/billing/invoice.ts"), tmp_path) == "billing"

    def test_fallback_root(self, tmp_path):
        assert infer_subsystem(str(tmp_path / "index.ts"), tmp_path) == "root"
        assert infer_subsystem(str(tmp_path / "src/index.ts"), tmp_path) == "root"


class TestModuleResolver:
    def test_relative_with_extension_probe(self, tmp_project):
        resolver = ModuleResolver(tmp_project)
        importer = tmp_project / "src" / "pages" / "home.ts"
        resolved = resolver.resolve("../components/Header", importer)
        assert resolved.endswith("src/components/Header.tsx")

    def test_js_specifier_maps_to_ts(self, tmp_project):
        resolver = ModuleResolver(tmp_project)
        importer = tmp_project / "src" / "api" / "client.ts"
        assert resolver.resolve("../lib/format.js", importer).endswith("format.ts")

    def test_index_file(self, tmp_project):
        (tmp_project / "src" / "lib" / "index.ts").write_text("export * from './format';\n")
        resolver = ModuleResolver(tmp_project)
        importer = tmp_project / "src" / "pages" / "home.ts"
        assert resolver.resolve("../lib", importer).endswith("index.ts")

    def test_root_relative(self, tmp_project):
        resolver = ModuleResolver(tmp_project)
        assert resolver.resolve("src/utils/math", tmp_project / "x.ts").endswith("math.ts")

    def test_unresolvable(self, tmp_project):
        resolver = ModuleResolver(tmp_project)
        assert resolver.resolve("./nope", tmp_project / "src" / "a.ts") is None

    def test_external(self, tmp_project):
        resolver = ModuleResolver(tmp_project)
        assert resolver.is_external("axios")
        assert resolver.is_external("fs")
        assert resolver.is_external("node:path")
        assert not resolver.is_external("left-pad")
        assert not resolver.is_external("./lib")

    def test_scoped_package(self, tmp_project):
        (tmp_project / "node_modules" / "@scope" / "pkg").mkdir(parents=True)
        assert ModuleResolver(tmp_project).is_external("@scope/pkg/sub")


class TestScoreGraph:
    def test_imported_in_files(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        report = score_graph(graph, [FORMAT], get_default_config())

        risks = {r.factor: r for r in report.risks_by_file[FORMAT]}
        assert risks[RiskFactor.IMPORTED_IN_FILES].points == 4 * 1.2
        assert risks[RiskFactor.IMPORTED_IN_FILES].explanation == (
            f"Imported by {CLIENT}, {HEADER}, {HOME}"
        )
        assert risks[RiskFactor.USED_IN_MULTIPLE_TREES].points == 5
        assert risks[RiskFactor.USED_IN_MULTIPLE_TREES].explanation == (
            "Used across 3 project areas (API, Pages, UI)"
        )
        assert report.impacts[FORMAT].blast_radius == 4
        assert report.impacts[FORMAT].dependents == [CLIENT, HEADER, HOME]

    def test_single_subsystem(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        report = score_graph(graph, [HEADER], get_default_config())
        factors = [r.factor for r in report.risks_by_file[HEADER]]
        assert factors == [RiskFactor.IMPORTED_IN_FILES]

    def test_partial_import(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        report = score_graph(graph, [CLIENT], get_default_config())
        risks = report.risks_by_file[CLIENT]
        assert [r.factor for r in risks] == [RiskFactor.PARTIAL_IMPORT]
        assert risks[0].points == 0
        assert risks[0].explanation == "Dynamic or malformed import"

    def test_unused_file_has_no_risks(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        report = score_graph(graph, [MATH], get_default_config())
        assert MATH not in report.risks_by_file
        assert report.impacts[MATH].blast_radius == 0
        assert report.total == 0

    def test_skips_tests_and_unknown(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        report = score_graph(
            graph, ["tests/format.test.ts", "src/gone.ts", "README.md"], get_default_config()
        )
        assert report.risks_by_file == {}
        assert report.impacts == {}

    def test_weights_from_config(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        config = resolve_config({"riskWeights": {"IMPORTED_IN_FILES": 2}})
        report = score_graph(graph, [HEADER], config)
        assert report.risks_by_file[HEADER][0].points == 2

    def test_links_with_context(self, tmp_project):
        graph = UsageGraphBuilder(tmp_project).build()
        context = RenderContext(repo_url="https://github.com/acme/app", branch="feature")
        report = score_graph(graph, [HEADER], get_default_config(), context)
        assert report.risks_by_file[HEADER][0].explanation == (
            f"Imported by [{HOME}](https://github.com/acme/app/blob/feature/{HOME})"
        )
