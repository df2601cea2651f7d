"""Shared test fixtures for Diffuse."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create a temporary TypeScript project.

    Layout (importers of src/lib/format.ts in brackets):

        src/lib/format.ts          [client, Header, home]
        src/components/Header.tsx  [home]
        src/pages/home.ts
        src/api/client.ts          (also imports axios and a dynamic path)
        src/utils/math.ts          (no importers)
        tests/format.test.ts
        node_modules/axios/index.js
    """
    (tmp_path / "src" / "lib").mkdir(parents=True)
    (tmp_path / "src" / "components").mkdir()
    (tmp_path / "src" / "pages").mkdir()
    (tmp_path / "src" / "api").mkdir()
    (tmp_path / "src" / "utils").mkdir()
    (tmp_path / "tests").mkdir()
    (tmp_path / "node_modules" / "axios").mkdir(parents=True)

    (tmp_path / "src" / "lib" / "format.ts").write_text('''export interface User {
  id: string;
  name?: string;
}

export function formatName(name: string): string {
  return name.trim();
}

export const VERSION = "1.0.0";
''')

    (tmp_path / "src" / "components" / "Header.tsx").write_text('''import { formatName } from "../lib/format";

export default function Header(props: { title: string }) {
  return <h1>{formatName(props.title)}</h1>;
}
''')

    (tmp_path / "src" / "pages" / "home.ts").write_text('''import type { User } from "../lib/format";
import Header from "../components/Header";

export function render(user: User): string {
  return String(Header) + user.id;
}
''')

    (tmp_path / "src" / "api" / "client.ts").write_text('''import axios from "axios";
import { formatName } from "../lib/format.js";

export async function loadPlugin(path: string) {
  const plugin = await import(path);
  return formatName(plugin.name);
}

export function fetchUser(id: string) {
  return axios.get(`/users/${id}`);
}
''')

    (tmp_path / "src" / "utils" / "math.ts").write_text('''export function add(a: number, b: number): number {
  return a + b;
}
''')

    (tmp_path / "tests" / "format.test.ts").write_text('''import { formatName } from "../src/lib/format";

test("formatName trims", () => {
  expect(formatName(" a ")).toBe("a");
});
''')

    (tmp_path / "node_modules" / "axios" / "index.js").write_text("module.exports = {};\n")

    return tmp_path


def completed(args: list[str], stdout: str = "", returncode: int = 0, stderr: str = ""):
    return subprocess.CompletedProcess(["git", *args], returncode, stdout, stderr)


class FakeGit:
    """Stands in for the git binary: maps argument tuples to canned output.

    Unknown commands fail with returncode 1, like git does for bad refs.
    """

    def __init__(self, responses: dict[tuple[str, ...], str | int] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, ...]] = []

    def __call__(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        key = tuple(args)
        self.calls.append(key)
        response = self.responses.get(key)
        if response is None:
            return completed(args, returncode=1, stderr="fatal: unknown command")
        if isinstance(response, int):
            return completed(args, returncode=response)
        return completed(args, stdout=response)


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()
