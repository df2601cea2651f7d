"""Tests for export and import extraction."""

from __future__ import annotations

import pytest

from diffuse.exceptions import ParserError
from diffuse.filters import FileFilter
from diffuse.parser.core import collect_files, parse_module, read_source
from diffuse.parser.models import DeclarationKind, detect_language


TS_SOURCE = '''import { readFile } from "fs";
import * as path from "path";
import React, { useState as useLocalState } from "react";

export interface Props {
  id: string;
  label?: string;
  "data-test": boolean;
}

export function greet(name: string, punctuation?: string, ...rest: number[]): string {
  return name + (punctuation ?? "!");
}

export async function load(this: Window, id = 1): Promise<Props> {
  return { id: String(id), "data-test": true };
}

export class Store {}
export type Id = string | number;
export enum Color { Red, Green }
export const { a, b: renamed } = { a: 1, b: 2 };
export let counter = 0;

function helper(x: number): number {
  return x;
}
const internal = 1;

export { helper, internal as publicName };
export default Store;
'''


class TestDetectLanguage:
    def test_extensions(self):
        assert detect_language("a.ts") == "typescript"
        assert detect_language("a.tsx") == "tsx"
        assert detect_language("a.js") == "javascript"
        assert detect_language("a.jsx") == "javascript"
        assert detect_language("a.py") is None


class TestExports:
    @pytest.fixture
    def symbols(self):
        return parse_module("src/sample.ts", TS_SOURCE)

    def test_export_names(self, symbols):
        assert symbols.export_names == {
            "Props", "greet", "load", "Store", "Id", "Color", "a", "renamed",
            "counter", "helper", "publicName", "default",
        }
        assert "internal" not in symbols.exports

    def test_kinds(self, symbols):
        assert symbols.exports["greet"].kind == DeclarationKind.FUNCTION
        assert symbols.exports["Props"].kind == DeclarationKind.INTERFACE
        assert symbols.exports["Store"].kind == DeclarationKind.OTHER
        assert symbols.exports["Id"].kind == DeclarationKind.OTHER
        assert symbols.exports["counter"].kind == DeclarationKind.OTHER

    def test_function_signature(self, symbols):
        greet = symbols.exports["greet"]
        assert greet.return_type == "string"
        assert [p.name for p in greet.parameters] == ["name", "punctuation", "...rest"]
        assert greet.parameters[0].type == "string"
        assert not greet.parameters[0].optional
        assert greet.parameters[1].optional
        assert greet.parameters[1].type == "string | undefined"
        assert greet.parameters[2].rest

    def test_this_parameter_skipped(self, symbols):
        load = symbols.exports["load"]
        assert [p.name for p in load.parameters] == ["id"]
        assert load.parameters[0].optional
        assert load.return_type == "Promise<Props>"

    def test_interface_properties(self, symbols):
        props = {p.name: p for p in symbols.exports["Props"].properties}
        assert set(props) == {"id", "label", "data-test"}
        assert not props["id"].optional
        assert props["label"].optional
        assert props["label"].type == "string"

    def test_export_clause_resolves_locals(self, symbols):
        assert symbols.exports["helper"].kind == DeclarationKind.FUNCTION
        assert symbols.exports["helper"].return_type == "number"
        assert symbols.exports["publicName"].kind == DeclarationKind.OTHER

    def test_default_identifier(self, symbols):
        assert symbols.exports["default"].syntax == "class_declaration"

    def test_imports(self, symbols):
        by_specifier = {i.specifier: i for i in symbols.imports}
        assert by_specifier["fs"].symbols == ["readFile"]
        assert by_specifier["path"].symbols == ["* as path"]
        assert by_specifier["react"].symbols == ["React", "useState"]
        assert not symbols.errors


class TestDefaultsAndReexports:
    def test_default_function(self):
        symbols = parse_module("a.ts", "export default function (x: number): number { return x; }\n")
        decl = symbols.exports["default"]
        assert decl.kind == DeclarationKind.FUNCTION
        assert decl.return_type == "number"

    def test_default_arrow(self):
        symbols = parse_module("a.js", "export default (a, b) => a + b;\n")
        decl = symbols.exports["default"]
        assert decl.kind == DeclarationKind.FUNCTION
        assert [p.name for p in decl.parameters] == ["a", "b"]

    def test_default_object(self):
        symbols = parse_module("a.js", "export default { a: 1 };\n")
        assert symbols.exports["default"].kind == DeclarationKind.OTHER

    def test_named_reexport(self):
        symbols = parse_module("index.ts", 'export { foo, bar as baz } from "./lib";\n')
        assert symbols.export_names == {"foo", "baz"}
        assert symbols.exports["foo"].kind == DeclarationKind.OTHER
        ref = symbols.imports[0]
        assert ref.specifier == "./lib"
        assert ref.reexport
        assert ref.symbols == ["foo", "bar"]

    def test_star_reexport(self):
        symbols = parse_module("index.ts", 'export * from "./lib";\nexport * as util from "./util";\n')
        assert symbols.export_names == {"util"}
        assert [i.specifier for i in symbols.imports] == ["./lib", "./util"]
        assert all(i.symbols == ["*"] for i in symbols.imports)

    def test_overload_uses_implementation(self):
        source = '''export function pick(x: string): string;
export function pick(x: number): number;
export function pick(x: any): any { return x; }
'''
        decl = parse_module("a.ts", source).exports["pick"]
        assert decl.syntax == "function_declaration"
        assert decl.return_type == "any"

    def test_ambient_declaration(self):
        symbols = parse_module("a.d.ts", "export declare function ping(): Promise<void>;\n")
        assert symbols.exports["ping"].kind == DeclarationKind.FUNCTION
        assert symbols.exports["ping"].return_type == "Promise<void>"

    def test_exported_arrow_const_is_other(self):
        symbols = parse_module("a.ts", "export const add = (a: number, b: number) => a + b;\n")
        assert symbols.exports["add"].kind == DeclarationKind.OTHER


class TestImports:
    def test_dynamic_literal(self):
        symbols = parse_module("a.ts", 'async function f() { await import("./lazy"); }\n')
        ref = symbols.imports[0]
        assert ref.dynamic
        assert ref.specifier == "./lazy"

    def test_dynamic_expression_is_unresolvable(self):
        symbols = parse_module("a.ts", "async function f(p: string) { await import(p); }\n")
        ref = symbols.imports[0]
        assert ref.dynamic
        assert ref.specifier is None

    def test_import_require(self):
        symbols = parse_module("a.ts", 'import fs = require("fs");\n')
        assert symbols.imports[0].specifier == "fs"
        assert symbols.imports[0].symbols == ["fs"]

    def test_side_effect_import(self):
        symbols = parse_module("a.ts", 'import "./polyfills";\n')
        assert symbols.imports[0].specifier == "./polyfills"
        assert symbols.imports[0].symbols == []

    def test_tsx(self):
        symbols = parse_module(
            "Button.tsx",
            'import { x } from "./x";\nexport const Button = () => <button>{x}</button>;\n',
        )
        assert "Button" in symbols.exports
        assert symbols.imports[0].specifier == "./x"


class TestParseErrors:
    def test_unsupported_extension(self):
        with pytest.raises(ParserError):
            parse_module("style.css", "body {}")

    def test_syntax_errors_are_reported(self):
        symbols = parse_module("a.ts", "export function broken( {\n")
        assert symbols.errors

    def test_two_versions_independent(self):
        old = parse_module("a.ts", "export function f(): string { return ''; }\n")
        new = parse_module("a.ts", "export function g(): number { return 1; }\n")
        assert old.export_names == {"f"}
        assert new.export_names == {"g"}


class TestCollectFiles:
    def test_collects_sorted_relative_paths(self, tmp_project):
        files = collect_files(tmp_project)
        assert files == sorted(files)
        assert "src/lib/format.ts" in files
        assert "src/components/Header.tsx" in files
        assert "tests/format.test.ts" in files
        assert not any(f.startswith("node_modules/") for f in files)

    def test_respects_gitignore(self, tmp_project):
        (tmp_project / ".gitignore").write_text("/src/utils\n# comment\n")
        assert "src/utils/math.ts" not in collect_files(tmp_project)

    def test_respects_filter(self, tmp_project):
        files = collect_files(tmp_project, FileFilter(exclude_files=["*.tsx"]))
        assert "src/components/Header.tsx" not in files

    def test_read_source(self, tmp_project):
        assert "formatName" in read_source(tmp_project / "src" / "lib" / "format.ts")
        assert read_source(tmp_project / "missing.ts") is None
