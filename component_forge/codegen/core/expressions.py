"""
Safe expression evaluation for declarative transformation rules.

Expressions such as ``"'xl' if rounded else None"`` or
``"{'appendIcon': icon} if iconPosition == 'right' else {'prependIcon': icon}"``
are parsed once with :mod:`ast` and evaluated against a restricted
environment. Only a limited set of node types, operators and functions is
allowed.
"""

import ast
import operator
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet

from ...logging_config import get_logger

logger = get_logger(__name__)


SAFE_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "len": len,
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "min": min,
    "max": max,
    "abs": abs,
    "round": round,
    "isinstance": isinstance,
    "list": list,
    "dict": dict,
}

SAFE_CONSTANTS: Dict[str, Any] = {
    "None": None,
    "True": True,
    "False": False,
    "null": None,
    "true": True,
    "false": False,
}


class ExpressionError(ValueError):
    """Raised for syntactically invalid or disallowed expressions."""

    pass


@dataclass(frozen=True)
class CompiledExpression:
    """A parsed expression plus the free names it references."""

    source: str
    tree: ast.Expression
    names: FrozenSet[str]

    def evaluate(self, env: Mapping[str, Any]) -> Any:
        """Evaluate against ``env``; raises NameError for unknown names."""
        return ExpressionEvaluator.eval_node(self.tree.body, env)


class ExpressionEvaluator:
    """Parse and evaluate safe expressions over prop values."""

    SAFE_OPERATORS: Dict[type, Callable[..., Any]] = {
        ast.Add: operator.add,
        ast.Sub: operator.sub,
        ast.Mult: operator.mul,
        ast.Div: operator.truediv,
        ast.Mod: operator.mod,
        ast.Eq: operator.eq,
        ast.NotEq: operator.ne,
        ast.Lt: operator.lt,
        ast.LtE: operator.le,
        ast.Gt: operator.gt,
        ast.GtE: operator.ge,
        ast.In: lambda x, y: x in y,
        ast.NotIn: lambda x, y: x not in y,
        ast.Is: operator.is_,
        ast.IsNot: operator.is_not,
        ast.Not: operator.not_,
        ast.USub: operator.neg,
        ast.UAdd: operator.pos,
    }

    @classmethod
    def compile(cls, expression: str) -> CompiledExpression:
        """Parse an expression.

        Args:
            expression: Expression source.

        Returns:
            CompiledExpression ready for evaluation.

        Raises:
            ExpressionError: If the syntax is invalid.
        """
        try:
            tree = ast.parse(expression.strip(), mode="eval")
        except SyntaxError as e:
            logger.error("Invalid expression syntax %r: %s", expression, e)
            raise ExpressionError(f"Invalid expression syntax: {e}") from e

        names = frozenset(
            node.id
            for node in ast.walk(tree)
            if isinstance(node, ast.Name)
            and node.id not in SAFE_FUNCTIONS
            and node.id not in SAFE_CONSTANTS
        )
        logger.debug("Compiled expression %r (names=%s)", expression, sorted(names))
        return CompiledExpression(source=expression, tree=tree, names=names)

    @classmethod
    def evaluate(cls, expression: str, env: Mapping[str, Any]) -> Any:
        """Compile and evaluate in one step."""
        return cls.compile(expression).evaluate(env)

    @classmethod
    def eval_node(cls, node: ast.AST, env: Mapping[str, Any]) -> Any:
        """Safely evaluate an AST node.

        Raises:
            ExpressionError: If the node type or operator is unsupported.
            NameError: If a variable is undefined.
        """
        if isinstance(node, ast.Constant):
            return node.value
        elif isinstance(node, ast.Name):
            if node.id in env:
                return env[node.id]
            if node.id in SAFE_CONSTANTS:
                return SAFE_CONSTANTS[node.id]
            if node.id in SAFE_FUNCTIONS:
                return SAFE_FUNCTIONS[node.id]
            raise NameError(f"Name '{node.id}' is not defined")
        elif isinstance(node, ast.BinOp):
            op_func = cls._operator(node.op)
            return op_func(cls.eval_node(node.left, env), cls.eval_node(node.right, env))
        elif isinstance(node, ast.UnaryOp):
            op_func = cls._operator(node.op)
            return op_func(cls.eval_node(node.operand, env))
        elif isinstance(node, ast.Compare):
            left = cls.eval_node(node.left, env)
            for op, comparator in zip(node.ops, node.comparators):
                right = cls.eval_node(comparator, env)
                if not cls._operator(op)(left, right):
                    return False
                left = right
            return True
        elif isinstance(node, ast.BoolOp):
            if isinstance(node.op, ast.And):
                result: Any = True
                for value in node.values:
                    result = cls.eval_node(value, env)
                    if not result:
                        return result
                return result
            result = False
            for value in node.values:
                result = cls.eval_node(value, env)
                if result:
                    return result
            return result
        elif isinstance(node, ast.IfExp):
            if cls.eval_node(node.test, env):
                return cls.eval_node(node.body, env)
            return cls.eval_node(node.orelse, env)
        elif isinstance(node, ast.Call):
            func = cls._resolve_callable(node.func, env)
            args = [cls.eval_node(arg, env) for arg in node.args]
            kwargs = {kw.arg: cls.eval_node(kw.value, env) for kw in node.keywords}
            return func(*args, **kwargs)
        elif isinstance(node, ast.Attribute):
            if node.attr.startswith("_"):
                raise ExpressionError(f"Access to attribute '{node.attr}' is not allowed")
            return getattr(cls.eval_node(node.value, env), node.attr)
        elif isinstance(node, ast.Subscript):
            obj = cls.eval_node(node.value, env)
            return obj[cls.eval_node(node.slice, env)]
        elif isinstance(node, ast.List):
            return [cls.eval_node(item, env) for item in node.elts]
        elif isinstance(node, ast.Tuple):
            return tuple(cls.eval_node(item, env) for item in node.elts)
        elif isinstance(node, ast.Dict):
            return {
                cls.eval_node(k, env): cls.eval_node(v, env)
                for k, v in zip(node.keys, node.values)
            }
        elif isinstance(node, ast.JoinedStr):
            return "".join(str(cls.eval_node(value, env)) for value in node.values)
        elif isinstance(node, ast.FormattedValue):
            return cls.eval_node(node.value, env)
        raise ExpressionError(f"Unsupported expression node: {type(node).__name__}")

    @classmethod
    def _operator(cls, op: ast.AST) -> Callable[..., Any]:
        op_func = cls.SAFE_OPERATORS.get(type(op))
        if op_func is None:
            raise ExpressionError(f"Unsupported operator: {type(op).__name__}")
        return op_func

    @classmethod
    def _resolve_callable(cls, func_node: ast.AST, env: Mapping[str, Any]) -> Callable[..., Any]:
        if isinstance(func_node, ast.Name):
            if func_node.id in SAFE_FUNCTIONS:
                return SAFE_FUNCTIONS[func_node.id]
            raise ExpressionError(f"Function '{func_node.id}' is not available")
        if isinstance(func_node, ast.Attribute):
            # Method calls on values, e.g. value.startswith('pi-')
            return cls.eval_node(func_node, env)
        raise ExpressionError("Unsupported call target")
