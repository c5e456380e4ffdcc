# ==============================
# Step Conditions
# ==============================
"""
Evaluate a step condition such as "{{step0.result.items.length}} > 0".

Rules:
- References are bound as variables, never spliced into the source text, so a
  referenced value cannot inject syntax.
- JS-style operators are accepted (===, !==, &&, ||, !) alongside Python ones,
  as are the literals true/false/null.
- Evaluation walks a whitelisted subset of the Python AST: literals, names bound
  above, boolean/unary/binary operators, comparisons, `in`, subscripts and len().
  Anything else raises ConditionError.
"""

from __future__ import annotations

import ast
import operator
import re
from typing import Any, Callable, Dict, List, Sequence, Tuple

from toolkit.contracts.chain_schema import StepResult
from toolkit.orchestrator.templating import TOKEN_RE, check_references, resolve_reference
from toolkit.utils.errors import ConditionError

_STRING_RE = re.compile(r"(\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*')")

_JS_OPERATORS = (
    (re.compile(r"!=="), " != "),
    (re.compile(r"==="), " == "),
    (re.compile(r"&&"), " and "),
    (re.compile(r"\|\|"), " or "),
    (re.compile(r"!(?!=)"), " not "),
)

_LITERALS: Dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "True": True,
    "False": False,
    "None": None,
}

_BIN_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
}

_CMP_OPS: Dict[type, Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}


def _translate(source: str) -> str:
    parts: List[str] = []
    for i, chunk in enumerate(_STRING_RE.split(source)):
        if i % 2 == 1:
            parts.append(chunk)
            continue
        for pattern, replacement in _JS_OPERATORS:
            chunk = pattern.sub(replacement, chunk)
        parts.append(chunk)
    return "".join(parts).strip()


def bind_references(condition: str, results: Sequence[StepResult]) -> Tuple[str, Dict[str, Any]]:
    """Swap each {{stepN...}} for a variable name; resolution errors propagate."""
    check_references(condition)
    names: Dict[str, Any] = {}

    def replace(match: re.Match[str]) -> str:
        name = f"__ref{len(names)}"
        names[name] = resolve_reference(int(match.group(1)), match.group(2), results)
        return f" {name} "

    return TOKEN_RE.sub(replace, condition), names


class _Evaluator:
    def __init__(self, names: Dict[str, Any]) -> None:
        self.names = names

    def eval(self, node: ast.AST) -> Any:
        method = getattr(self, f"_eval_{type(node).__name__}", None)
        if method is None:
            raise ConditionError(f"Unsupported expression in condition: {type(node).__name__}")
        return method(node)

    def _eval_Expression(self, node: ast.Expression) -> Any:
        return self.eval(node.body)

    def _eval_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def _eval_Name(self, node: ast.Name) -> Any:
        if node.id in self.names:
            return self.names[node.id]
        if node.id in _LITERALS:
            return _LITERALS[node.id]
        raise ConditionError(f"Unknown name in condition: {node.id}")

    def _eval_List(self, node: ast.List) -> Any:
        return [self.eval(e) for e in node.elts]

    def _eval_Tuple(self, node: ast.Tuple) -> Any:
        return tuple(self.eval(e) for e in node.elts)

    def _eval_BoolOp(self, node: ast.BoolOp) -> Any:
        if isinstance(node.op, ast.And):
            value: Any = True
            for v in node.values:
                value = self.eval(v)
                if not value:
                    return value
            return value
        value = False
        for v in node.values:
            value = self.eval(v)
            if value:
                return value
        return value

    def _eval_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.eval(node.operand)
        if isinstance(node.op, ast.Not):
            return not operand
        if isinstance(node.op, ast.USub):
            return -operand
        if isinstance(node.op, ast.UAdd):
            return +operand
        raise ConditionError(f"Unsupported unary operator: {type(node.op).__name__}")

    def _eval_BinOp(self, node: ast.BinOp) -> Any:
        fn = _BIN_OPS.get(type(node.op))
        if fn is None:
            raise ConditionError(f"Unsupported operator: {type(node.op).__name__}")
        return fn(self.eval(node.left), self.eval(node.right))

    def _eval_Compare(self, node: ast.Compare) -> Any:
        left = self.eval(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            fn = _CMP_OPS.get(type(op))
            if fn is None:
                raise ConditionError(f"Unsupported comparison: {type(op).__name__}")
            right = self.eval(comparator)
            if not fn(left, right):
                return False
            left = right
        return True

    def _eval_Subscript(self, node: ast.Subscript) -> Any:
        container = self.eval(node.value)
        key = self.eval(node.slice)
        try:
            return container[key]
        except (KeyError, IndexError, TypeError) as exc:
            raise ConditionError(f"Invalid subscript in condition: {exc}") from exc

    def _eval_Call(self, node: ast.Call) -> Any:
        if isinstance(node.func, ast.Name) and node.func.id == "len" and len(node.args) == 1 and not node.keywords:
            return len(self.eval(node.args[0]))
        raise ConditionError("Only len() may be called in a condition")


def evaluate_condition(condition: str, results: Sequence[StepResult]) -> bool:
    """True when the step should run. Unresolved references raise TemplateResolutionError."""
    source, names = bind_references(condition, results)
    source = _translate(source)
    if not source:
        raise ConditionError("Condition is empty")
    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as exc:
        raise ConditionError(f"Invalid condition syntax: {condition}") from exc
    try:
        return bool(_Evaluator(names).eval(tree))
    except ConditionError:
        raise
    except (TypeError, ValueError, ZeroDivisionError) as exc:
        raise ConditionError(f"Condition could not be evaluated: {exc}") from exc
