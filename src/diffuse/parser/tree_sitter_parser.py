"""Tree-sitter based extraction of exports and imports from JS/TS sources."""

from __future__ import annotations

import importlib
from functools import lru_cache

from diffuse.parser.models import (
    Declaration,
    DeclarationKind,
    ImportRef,
    ModuleSymbols,
    Parameter,
    PropertySignature,
)

# Grammar module and loader function per language
_TS_LANGUAGE_MODULES = {
    "typescript": ("tree_sitter_typescript", "language_typescript"),
    "tsx": ("tree_sitter_typescript", "language_tsx"),
    "javascript": ("tree_sitter_javascript", "language"),
}

_FUNCTION_NODES = {"function_declaration", "generator_function_declaration", "function_signature"}
_FUNCTION_VALUES = {"function_expression", "function", "arrow_function", "generator_function"}
_OTHER_NAMED_NODES = {
    "class_declaration",
    "abstract_class_declaration",
    "enum_declaration",
    "type_alias_declaration",
    "internal_module",
    "module",
}
_BINDING_NODES = {"identifier", "shorthand_property_identifier_pattern"}


def is_available(language: str | None = None) -> bool:
    """Check if tree-sitter and the required language grammar are available."""
    try:
        import tree_sitter  # noqa: F401
    except ImportError:
        return False

    if language is None:
        return True

    entry = _TS_LANGUAGE_MODULES.get(language)
    if not entry:
        return False

    try:
        importlib.import_module(entry[0])
        return True
    except ImportError:
        return False


@lru_cache(maxsize=None)
def _get_language(lang: str):
    """Get a tree-sitter Language object for the given language."""
    from tree_sitter import Language

    entry = _TS_LANGUAGE_MODULES.get(lang)
    if not entry:
        raise ValueError(f"No tree-sitter grammar for language: {lang}")

    module_name, loader = entry
    module = importlib.import_module(module_name)
    return Language(getattr(module, loader)())


def parse_tree_sitter_file(file_path: str, language: str, source: str) -> ModuleSymbols:
    """Parse one version of a file into its exports and imports.

    Every call builds its own Parser and tree, so two versions of the same
    path never share parse state.
    """
    from tree_sitter import Parser

    result = ModuleSymbols(file_path=file_path, language=language)

    try:
        parser = Parser(_get_language(language))
        tree = parser.parse(source.encode("utf-8"))
    except Exception as e:
        result.errors.append(f"tree-sitter parse error: {e}")
        return result

    if tree.root_node.has_error:
        result.errors.append("source contains syntax errors")

    _ModuleExtractor(result).extract(tree.root_node)
    return result


def _text(node) -> str:
    return node.text.decode("utf-8", errors="replace") if node is not None else ""


def _line(node) -> int:
    return node.start_point[0] + 1


def _string_value(node) -> str | None:
    """Literal value of a string node, or None for anything else."""
    if node is None:
        return None
    text = _text(node)
    if node.type == "string" and len(text) >= 2:
        return text[1:-1]
    if node.type == "template_string" and len(text) >= 2:
        if any(c.type == "template_substitution" for c in node.named_children):
            return None
        return text[1:-1]
    return None


def _annotation_text(node) -> str | None:
    """Type text of a `: T` annotation node."""
    if node is None:
        return None
    if node.type == "type_predicate_annotation":
        return "boolean"
    if node.type == "asserts_annotation":
        return "void"
    named = [c for c in node.named_children if c.type != "comment"]
    if not named:
        return None
    return _text(named[0])


def _named_child(node, node_type: str):
    for child in node.named_children:
        if child.type == node_type:
            return child
    return None


class _ModuleExtractor:
    """Walks a program node and fills a ModuleSymbols."""

    def __init__(self, result: ModuleSymbols) -> None:
        self.result = result
        self.local: dict[str, Declaration] = {}
        # (local name, exported name, line) for `export { a as b }` / `export default a`
        self.pending: list[tuple[str, str, int]] = []

    def extract(self, root) -> None:
        for child in root.named_children:
            self._visit_statement(child)

        for local, exported, line in self.pending:
            decl = self.local.get(local)
            if decl is None:
                decl = Declaration(
                    name=exported, kind=DeclarationKind.OTHER, line=line, syntax="export_specifier"
                )
            else:
                decl = decl.model_copy(update={"name": exported})
            self._add_export(decl)

        self._collect_dynamic_imports(root)

    def _add_export(self, decl: Declaration) -> None:
        existing = self.result.exports.get(decl.name)
        # An overload signature gives way to the implementation.
        if existing is None or (
            existing.syntax == "function_signature" and decl.syntax != "function_signature"
        ):
            self.result.exports[decl.name] = decl

    def _visit_statement(self, node) -> None:
        if node.type == "export_statement":
            self._visit_export(node)
        elif node.type == "import_statement":
            self._visit_import(node)
        else:
            self._record_local(node)

    def _record_local(self, node) -> list[Declaration]:
        decls = self._declarations(node)
        for decl in decls:
            existing = self.local.get(decl.name)
            if existing is None or existing.syntax == "function_signature":
                self.local[decl.name] = decl
        return decls

    # Declarations

    def _declarations(self, node) -> list[Declaration]:
        node_type = node.type
        name_node = node.child_by_field_name("name")

        if node_type in _FUNCTION_NODES and name_node is not None:
            return [self._function(node, _text(name_node))]
        if node_type == "interface_declaration" and name_node is not None:
            return [self._interface(node, _text(name_node))]
        if node_type in _OTHER_NAMED_NODES and name_node is not None:
            return [self._other(node, _text(name_node))]
        if node_type in ("lexical_declaration", "variable_declaration"):
            decls = []
            for declarator in node.named_children:
                if declarator.type != "variable_declarator":
                    continue
                for binding in self._bindings(declarator.child_by_field_name("name")):
                    decls.append(self._other(declarator, binding))
            return decls
        if node_type == "ambient_declaration":
            decls = []
            for child in node.named_children:
                decls.extend(self._declarations(child))
            return decls
        return []

    def _bindings(self, pattern) -> list[str]:
        """Names bound by a variable declarator, including destructuring."""
        if pattern is None:
            return []
        if pattern.type == "identifier":
            return [_text(pattern)]
        names = []
        stack = [pattern]
        while stack:
            current = stack.pop()
            if current.type in _BINDING_NODES:
                names.append(_text(current))
                continue
            if current.type == "pair_pattern":
                value = current.child_by_field_name("value")
                if value is not None:
                    stack.append(value)
                continue
            stack.extend(reversed(current.named_children))
        return names

    def _other(self, node, name: str) -> Declaration:
        return Declaration(name=name, kind=DeclarationKind.OTHER, line=_line(node), syntax=node.type)

    def _function(self, node, name: str) -> Declaration:
        params_node = node.child_by_field_name("parameters")
        if params_node is not None:
            parameters = self._parameters(params_node)
        else:
            single = node.child_by_field_name("parameter")
            parameters = [Parameter(name=_text(single))] if single is not None else []

        return Declaration(
            name=name,
            kind=DeclarationKind.FUNCTION,
            line=_line(node),
            syntax=node.type,
            return_type=_annotation_text(node.child_by_field_name("return_type")),
            parameters=parameters,
        )

    def _parameters(self, params_node) -> list[Parameter]:
        params: list[Parameter] = []
        for child in params_node.named_children:
            child_type = child.type
            if child_type in ("required_parameter", "optional_parameter"):
                pattern = child.child_by_field_name("pattern")
                name = _text(pattern)
                if name == "this":
                    continue
                type_text = _annotation_text(child.child_by_field_name("type"))
                optional = child_type == "optional_parameter"
                if optional and type_text is not None:
                    type_text = f"{type_text} | undefined"
                params.append(
                    Parameter(
                        name=name,
                        type=type_text,
                        optional=optional or child.child_by_field_name("value") is not None,
                        rest=pattern is not None and pattern.type == "rest_pattern",
                    )
                )
            elif child_type == "assignment_pattern":
                params.append(Parameter(name=_text(child.child_by_field_name("left")), optional=True))
            elif child_type == "rest_pattern":
                params.append(Parameter(name=_text(child), rest=True))
            elif child_type in ("identifier", "object_pattern", "array_pattern"):
                params.append(Parameter(name=_text(child)))
        return params

    def _interface(self, node, name: str) -> Declaration:
        properties: list[PropertySignature] = []
        body = node.child_by_field_name("body")
        if body is not None:
            for member in body.named_children:
                if member.type != "property_signature":
                    continue
                name_node = member.child_by_field_name("name")
                prop_name = _string_value(name_node) or _text(name_node)
                properties.append(
                    PropertySignature(
                        name=prop_name,
                        optional=any(c.type == "?" for c in member.children),
                        type=_annotation_text(member.child_by_field_name("type")),
                    )
                )
        return Declaration(
            name=name,
            kind=DeclarationKind.INTERFACE,
            line=_line(node),
            syntax=node.type,
            properties=properties,
        )

    # Exports and imports

    def _visit_export(self, node) -> None:
        line = _line(node)
        is_default = any(c.type == "default" for c in node.children)
        source = node.child_by_field_name("source")
        declaration = node.child_by_field_name("declaration")
        value = node.child_by_field_name("value")
        clause = _named_child(node, "export_clause")

        if source is not None:
            self._visit_reexport(node, clause, source, line)
            return

        if declaration is not None:
            decls = self._record_local(declaration)
            if is_default:
                for decl in decls[:1]:
                    self._add_export(decl.model_copy(update={"name": "default"}))
            else:
                for decl in decls:
                    self._add_export(decl)
            return

        if is_default and value is not None:
            if value.type == "identifier":
                self.pending.append((_text(value), "default", line))
            elif value.type in _FUNCTION_VALUES:
                self._add_export(self._function(value, "default"))
            else:
                self._add_export(self._other(value, "default"))
            return

        if clause is not None:
            for spec in clause.named_children:
                if spec.type != "export_specifier":
                    continue
                local = _text(spec.child_by_field_name("name"))
                alias = spec.child_by_field_name("alias")
                self.pending.append((local, _text(alias) if alias is not None else local, line))

    def _visit_reexport(self, node, clause, source, line: int) -> None:
        symbols: list[str] = []
        if clause is not None:
            for spec in clause.named_children:
                if spec.type != "export_specifier":
                    continue
                name = _text(spec.child_by_field_name("name"))
                alias = spec.child_by_field_name("alias")
                symbols.append(name)
                exported = _text(alias) if alias is not None else name
                self._add_export(
                    Declaration(
                        name=exported, kind=DeclarationKind.OTHER, line=line, syntax="export_specifier"
                    )
                )
        else:
            namespace = _named_child(node, "namespace_export")
            if namespace is not None:
                names = [c for c in namespace.named_children if c.type != "comment"]
                if names:
                    self._add_export(
                        Declaration(
                            name=_text(names[-1]),
                            kind=DeclarationKind.OTHER,
                            line=line,
                            syntax="namespace_export",
                        )
                    )
            symbols.append("*")

        self.result.imports.append(
            ImportRef(specifier=_string_value(source), symbols=symbols, line=line, reexport=True)
        )

    def _visit_import(self, node) -> None:
        source = node.child_by_field_name("source")
        symbols: list[str] = []

        require_clause = _named_child(node, "import_require_clause")
        if require_clause is not None:
            source = require_clause.child_by_field_name("source")
            ident = _named_child(require_clause, "identifier")
            if ident is not None:
                symbols.append(_text(ident))

        clause = _named_child(node, "import_clause")
        if clause is not None:
            for child in clause.named_children:
                if child.type == "identifier":
                    symbols.append(_text(child))
                elif child.type == "namespace_import":
                    ident = _named_child(child, "identifier")
                    symbols.append(f"* as {_text(ident)}")
                elif child.type == "named_imports":
                    for spec in child.named_children:
                        if spec.type == "import_specifier":
                            symbols.append(_text(spec.child_by_field_name("name")))

        self.result.imports.append(
            ImportRef(specifier=_string_value(source), symbols=symbols, line=_line(node))
        )

    def _collect_dynamic_imports(self, root) -> None:
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "call_expression":
                function = node.child_by_field_name("function")
                if function is not None and function.type == "import":
                    args = node.child_by_field_name("arguments")
                    first = None
                    if args is not None:
                        named = [c for c in args.named_children if c.type != "comment"]
                        first = named[0] if named else None
                    self.result.imports.append(
                        ImportRef(
                            specifier=_string_value(first),
                            symbols=["*"],
                            line=_line(node),
                            dynamic=True,
                        )
                    )
            stack.extend(reversed(node.children))
