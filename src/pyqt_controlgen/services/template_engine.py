"""
Template engine for placeholder substitution.

Replaces placeholder variables in control text with context values.

Syntaxes:
    #{Name}   ${Name}   {{Name}}    bare variable reference
    #{Total * 2}                    restricted arithmetic expression

Unknown variables are left verbatim. Expressions are only evaluated when,
after substituting known context values, they consist of digits, arithmetic
operators, dots, parentheses and whitespace; evaluation walks the parsed AST
and never executes text.

Example:
    engine = TemplateEngine()
    engine.update_context({"UserName": "Ann", "Total": 25.99})
    engine.render("Hello #{UserName}, your total is #{Total}")
    # "Hello Ann, your total is 25.99"

    unwatch = engine.watch(["UserName"], lambda changed, ctx: print(ctx["UserName"]))
"""

import ast
import itertools
import json
import logging
import numbers
import operator
import re
from collections import OrderedDict
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pyqt_controlgen.core.exceptions import TemplateExpressionError
from pyqt_controlgen.protocols.control_config import get_control_config

logger = logging.getLogger(__name__)

VARIABLE_PATTERNS = (
    re.compile(r"#\{(\w+)\}"),
    re.compile(r"\$\{(\w+)\}"),
    re.compile(r"\{\{(\w+)\}\}"),
)
EXPRESSION_PATTERN = re.compile(r"#\{(.+?)\}")
SAFE_EXPRESSION = re.compile(r"^[\d\s+\-*/.()]+$")

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
}
_UNARY_OPERATORS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_MISSING = object()

WatchCallback = Callable[[List[str], Dict[str, Any]], None]


def format_value(value: Any) -> str:
    """
    Format a context value for display.

    None renders empty, integral numbers without decimals, other numbers
    with two decimals, booleans as Yes/No and dates as locale short dates.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, numbers.Real):
        if float(value).is_integer():
            return str(int(value))
        return f"{float(value):.2f}"
    if isinstance(value, (date, datetime)):
        return value.strftime("%x")
    return str(value)


def _evaluate_node(node: ast.AST) -> Union[int, float]:
    if isinstance(node, ast.Expression):
        return _evaluate_node(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) \
            and not isinstance(node.value, bool):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPERATORS:
        return _BINARY_OPERATORS[type(node.op)](_evaluate_node(node.left), _evaluate_node(node.right))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPERATORS:
        return _UNARY_OPERATORS[type(node.op)](_evaluate_node(node.operand))
    raise TemplateExpressionError(f"Unsupported expression element: {type(node).__name__}")


def evaluate_expression(expression: str, context: Mapping[str, Any]) -> Union[int, float]:
    """
    Evaluate a restricted arithmetic expression over context values.

    Raises:
        TemplateExpressionError: If the expression is unsafe or malformed
    """
    substituted = expression
    for key, value in context.items():
        pattern = re.compile(rf"\b{re.escape(key)}\b")
        if pattern.search(substituted):
            replacement = json.dumps(value, default=str)
            substituted = pattern.sub(lambda _match: replacement, substituted)

    if not SAFE_EXPRESSION.match(substituted):
        raise TemplateExpressionError(f"Unsafe expression: {expression}")

    try:
        tree = ast.parse(substituted.strip(), mode="eval")
        return _evaluate_node(tree)
    except TemplateExpressionError:
        raise
    except (SyntaxError, ArithmeticError, ValueError) as e:
        raise TemplateExpressionError(f"Invalid expression: {expression}") from e


class TemplateEngine:
    """
    Placeholder renderer with a bounded, change-invalidated cache.

    The cache key is the literal text plus a stable serialization of the
    extra context. A context change drops only entries whose text mentions
    one of the changed keys in any of the three variable syntaxes.
    """

    def __init__(self, context: Optional[Mapping[str, Any]] = None,
                 max_cache_size: Optional[int] = None, cache_enabled: Optional[bool] = None):
        config = get_control_config()
        if context is None:
            now = datetime.now()
            context = {
                **config.default_context,
                "CurrentDate": now.strftime("%x"),
                "CurrentTime": now.strftime("%X"),
            }
        self.context: Dict[str, Any] = dict(context)
        self.max_cache_size = max_cache_size if max_cache_size is not None else config.template_cache_size
        self.cache_enabled = cache_enabled if cache_enabled is not None else config.template_cache_enabled
        self._cache: "OrderedDict[Tuple[str, str], str]" = OrderedDict()
        self._watchers: Dict[int, Tuple[List[str], WatchCallback]] = {}
        self._watcher_ids = itertools.count(1)
        self._helpers: Dict[str, Callable[..., Any]] = {}
        self._register_default_helpers()

    # ========== RENDERING ==========

    def render(self, text: Any, extra_context: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Render text by replacing placeholders with context values.

        Args:
            text: Text containing placeholders; non-strings are returned unchanged
            extra_context: Additional values overriding the global context

        Returns:
            Rendered text
        """
        if not isinstance(text, str):
            return text

        extra_context = extra_context or {}
        cache_key = (text, self._hash_context(extra_context))
        if self.cache_enabled and cache_key in self._cache:
            return self._cache[cache_key]

        merged = {**self.context, **extra_context}
        rendered = text

        for pattern in VARIABLE_PATTERNS:
            rendered = pattern.sub(lambda match: self._substitute_variable(match, merged), rendered)

        rendered = EXPRESSION_PATTERN.sub(lambda match: self._substitute_expression(match, merged), rendered)

        if self.cache_enabled:
            self._add_to_cache(cache_key, rendered)
        return rendered

    @staticmethod
    def _substitute_variable(match: "re.Match[str]", context: Mapping[str, Any]) -> str:
        key = match.group(1)
        if key in context:
            return format_value(context[key])
        logger.warning(f"Unknown context variable: {key}")
        return match.group(0)

    @staticmethod
    def _substitute_expression(match: "re.Match[str]", context: Mapping[str, Any]) -> str:
        expression = match.group(1)
        try:
            return format_value(evaluate_expression(expression, context))
        except TemplateExpressionError as e:
            logger.debug(f"Leaving placeholder {match.group(0)!r} unresolved: {e}")
            return match.group(0)

    def render_template(self, template: Any, extra_context: Optional[Mapping[str, Any]] = None) -> Any:
        """Render every string inside a nested dict/list structure."""
        if isinstance(template, str):
            return self.render(template, extra_context)
        if isinstance(template, Mapping):
            return {key: self.render_template(value, extra_context) for key, value in template.items()}
        if isinstance(template, list):
            return [self.render_template(item, extra_context) for item in template]
        return template

    # ========== CONTEXT ==========

    def update_context(self, updates: Mapping[str, Any]) -> List[str]:
        """
        Update several context values at once.

        Returns:
            Keys whose value actually changed
        """
        if not isinstance(updates, Mapping):
            logger.error("Context updates must be a mapping")
            return []

        changed_keys = []
        for key, value in updates.items():
            if self.context.get(key, _MISSING) != value:
                self.context[key] = value
                changed_keys.append(key)

        if changed_keys:
            self.invalidate_cache(changed_keys)
            self.notify_watchers(changed_keys)
            logger.debug(f"Context updated: {changed_keys}")
        return changed_keys

    def set_context(self, key: str, value: Any) -> None:
        old_value = self.context.get(key, _MISSING)
        self.context[key] = value
        if old_value is _MISSING or old_value != value:
            self.invalidate_cache([key])
            self.notify_watchers([key])
            logger.debug(f"Context {key} changed to {value!r}")

    def get_context(self, key: str, default: Any = None) -> Any:
        return self.context.get(key, default)

    def get_all_context(self) -> Dict[str, Any]:
        return dict(self.context)

    def clear_context(self) -> None:
        old_keys = list(self.context)
        self.context = {}
        self.clear_cache()
        if old_keys:
            self.notify_watchers(old_keys)
        logger.debug("Context cleared")

    # ========== WATCHERS ==========

    def watch(self, keys: Union[str, Iterable[str]], callback: WatchCallback) -> Optional[Callable[[], None]]:
        """
        Watch context keys for changes.

        Args:
            keys: Key or keys to watch
            callback: Called with (changed_keys, context_snapshot)

        Returns:
            Unwatch function, or None if callback is not callable
        """
        if not callable(callback):
            logger.error("Watch callback must be callable")
            return None

        key_list = [keys] if isinstance(keys, str) else list(keys)
        watcher_id = next(self._watcher_ids)
        self._watchers[watcher_id] = (key_list, callback)

        def unwatch() -> None:
            self._watchers.pop(watcher_id, None)

        return unwatch

    @staticmethod
    def referenced_keys(text: Any) -> List[str]:
        """Variable names referenced by text in any of the three syntaxes, in order."""
        if not isinstance(text, str):
            return []
        keys = [match.group(1) for pattern in VARIABLE_PATTERNS for match in pattern.finditer(text)]
        return list(dict.fromkeys(keys))

    def notify_watchers(self, changed_keys: List[str]) -> None:
        for watcher_id, (keys, callback) in list(self._watchers.items()):
            if not any(key in changed_keys for key in keys):
                continue
            try:
                callback(list(changed_keys), dict(self.context))
            except Exception:
                logger.exception(f"Error in context watcher {watcher_id}")

    # ========== CACHE ==========

    @staticmethod
    def _hash_context(extra_context: Mapping[str, Any]) -> str:
        return json.dumps(extra_context, sort_keys=True, default=str)

    def _add_to_cache(self, key: Tuple[str, str], value: str) -> None:
        if key not in self._cache and len(self._cache) >= self.max_cache_size:
            self._cache.popitem(last=False)
        self._cache[key] = value

    def invalidate_cache(self, changed_keys: Optional[Iterable[str]] = None) -> int:
        """
        Drop cache entries affected by changed keys.

        Args:
            changed_keys: Changed context keys; empty or None clears everything

        Returns:
            Number of entries removed
        """
        changed_keys = list(changed_keys or [])
        if not changed_keys:
            removed = len(self._cache)
            self.clear_cache()
            return removed

        markers = [
            marker
            for key in changed_keys
            for marker in (f"#{{{key}}}", f"${{{key}}}", f"{{{{{key}}}}}")
        ]
        # Expressions such as #{Total * 2} name their keys inside the braces
        words = [re.compile(rf"\b{re.escape(key)}\b") for key in changed_keys]
        stale = [
            cache_key for cache_key in self._cache
            if any(marker in cache_key[0] for marker in markers)
            or any(word.search(body) for body in EXPRESSION_PATTERN.findall(cache_key[0]) for word in words)
        ]
        for cache_key in stale:
            del self._cache[cache_key]

        logger.debug(f"Invalidated {len(stale)} cache entries")
        return len(stale)

    def clear_cache(self) -> None:
        self._cache.clear()

    def set_cache_enabled(self, enabled: bool) -> None:
        self.cache_enabled = enabled
        if not enabled:
            self.clear_cache()

    def get_cache_stats(self) -> Dict[str, Any]:
        return {
            "size": len(self._cache),
            "max_size": self.max_cache_size,
            "enabled": self.cache_enabled,
        }

    # ========== HELPERS ==========

    def register_helper(self, name: str, helper: Callable[..., Any]) -> bool:
        if not callable(helper):
            logger.error(f"Helper '{name}' must be callable")
            return False
        self._helpers[name] = helper
        logger.debug(f"Helper '{name}' registered")
        return True

    def call_helper(self, name: str, *args: Any) -> Any:
        helper = self._helpers.get(name)
        if helper is None:
            logger.warning(f"Unknown helper: {name}")
            return ""
        try:
            return helper(*args)
        except Exception:
            logger.exception(f"Error calling helper '{name}'")
            return ""

    def _register_default_helpers(self) -> None:
        self.register_helper("formatCurrency", format_currency)
        self.register_helper("formatDate", format_date)
        self.register_helper("uppercase", lambda text: str(text).upper())
        self.register_helper("lowercase", lambda text: str(text).lower())


def format_currency(amount: Any) -> str:
    """Format an amount as US dollars, e.g. -1234.5 -> '-$1,234.50'."""
    amount = float(amount)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_date(value: Any, style: str = "short") -> str:
    """Format a date, datetime, ISO string or timestamp."""
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    elif isinstance(value, numbers.Real):
        moment = datetime.fromtimestamp(float(value))
    else:
        moment = datetime.fromisoformat(str(value))

    if style == "long":
        return moment.strftime("%A, %B %d, %Y")
    if style == "time":
        return moment.strftime("%X")
    return moment.strftime("%x")
