import ast
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

# ==========================================
# STATIC ANALYSIS: ADAPTER ARCHITECTURE
# ==========================================

DEFAULT_REGISTRY = {
    "sources": ["input", "raw_input", "request", "sys.argv", "os.environ", "os.getenv", "get_param"],
    "sinks": [
        "eval", "exec", "os.system", "os.popen", "subprocess", "render_template_string",
        "pickle.loads", "marshal.loads", "yaml.load",
    ],
    "sanitizers": ["escape", "quote", "sanitize", "int", "float", "bool", "literal_eval"],
}


def dotted_name(node: ast.AST) -> Optional[str]:
    """`os.path.join` for Attribute chains, the id for Names, None otherwise."""
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        base = dotted_name(node.value)
        return f"{base}.{node.attr}" if base else None
    if isinstance(node, ast.Call):
        return dotted_name(node.func)
    if isinstance(node, ast.Subscript):
        return dotted_name(node.value)
    return None


def _matches(name: Optional[str], prefixes: List[str]) -> bool:
    return bool(name) and any(name == p or name.startswith(p + ".") for p in prefixes)


class BaseAdapter(ABC):
    """Abstract base for language-specific static analysis."""
    @abstractmethod
    def parse_source(self, code: str) -> Any: pass

    @abstractmethod
    def find_taint_paths(self, tree: Any, sources: List[str], sinks: List[str], sanitizers: List[str]) -> List[Dict[str, Any]]: pass

    def analyze(self, code: str, registry: Optional[Dict[str, List[str]]] = None) -> List[Dict[str, Any]]:
        registry = registry or DEFAULT_REGISTRY
        tree = self.parse_source(code)
        if tree is None:
            return []
        return self.find_taint_paths(tree, registry["sources"], registry["sinks"], registry["sanitizers"])


class PythonAdapter(BaseAdapter):
    """Python analysis using flow-insensitive, assignment-order taint tracking."""
    def parse_source(self, code: str) -> Optional[ast.AST]:
        try:
            return ast.parse(code)
        except (SyntaxError, ValueError):
            return None

    def find_taint_paths(self, tree: ast.AST, sources, sinks, sanitizers) -> List[Dict[str, Any]]:
        paths = []
        tainted_vars = set()

        def is_tainted(node: ast.AST) -> bool:
            if isinstance(node, ast.Call):
                func = dotted_name(node.func) or ""
                if func.split(".")[-1] in sanitizers:
                    return False
                if _matches(func, sources):
                    return True
            if isinstance(node, ast.Name):
                return node.id in tainted_vars or _matches(node.id, sources)
            if isinstance(node, (ast.Attribute, ast.Subscript)) and _matches(dotted_name(node), sources):
                return True
            return any(is_tainted(child) for child in ast.iter_child_nodes(node))

        def target_names(target: ast.AST) -> List[str]:
            if isinstance(target, ast.Name):
                return [target.id]
            if isinstance(target, (ast.Tuple, ast.List)):
                return [n for elt in target.elts for n in target_names(elt)]
            return []

        def assign(targets: List[ast.AST], value: Optional[ast.AST]):
            tainted = value is not None and is_tainted(value)
            for target in targets:
                for name in target_names(target):
                    if tainted:
                        tainted_vars.add(name)
                    else:
                        # Reassignment with clean data kills the taint
                        tainted_vars.discard(name)

        class TaintVisitor(ast.NodeVisitor):
            def visit_Assign(self, node):
                self.generic_visit(node)
                assign(node.targets, node.value)

            def visit_AnnAssign(self, node):
                self.generic_visit(node)
                if node.value is not None:
                    assign([node.target], node.value)

            def visit_AugAssign(self, node):
                self.generic_visit(node)
                if is_tainted(node.value):
                    for name in target_names(node.target):
                        tainted_vars.add(name)

            def visit_Call(self, node):
                sink = dotted_name(node.func)
                if _matches(sink, sinks):
                    args = list(node.args) + [kw.value for kw in node.keywords]
                    if any(is_tainted(a) for a in args):
                        paths.append({
                            "sink": sink,
                            "line": node.lineno,
                            "confidence": "HIGH",
                            "evidence": f"Tainted data flows into {sink}"
                        })
                self.generic_visit(node)

        TaintVisitor().visit(tree)
        return paths


ADAPTERS: Dict[str, BaseAdapter] = {".py": PythonAdapter()}


def adapter_for(filename: str) -> Optional[BaseAdapter]:
    for ext, adapter in ADAPTERS.items():
        if filename.lower().endswith(ext):
            return adapter
    return None
