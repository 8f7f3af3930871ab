"""
Script runtime for template declarations and expressions

Each compile gets its own QuickJS context. Nothing survives between
compiles, so concurrent requests never see each other's bindings.

The runtime exposes a narrow capability to the compiler:

    register(name, callback)    host function visible to template scripts
    declarations_run(code)      phase 1, run once before any expression
    evaluate(expr) -> str       phase 2, evaluate and stringify

Two host functions are registered up front, importCSS and importJS, which
record asset imports made from script code.
"""

import json
import math
from typing import Any, Callable, List, Optional

import quickjs

from .errors import DeclarationError, EvaluationError

# JS ToString, degrading to the [object Tag] form when String() throws
TEXT_CONVERT_SOURCE = """((toText, toTag) => (value) => {
    try { return toText(value); }
    catch (e) {
        try { return toTag.call(value); }
        catch (e2) { return ""; }
    }
})(String, Object.prototype.toString)"""


def value_stringify(value: Any, text_convert: Callable[[Any], str] = str) -> str:
    """
    Convert a value returned by the script engine to output text

    Conversion rules:
        undefined / null       → ""
        string                 → unchanged
        boolean                → "true" / "false"
        whole number           → decimal integer ("3", not "3.0")
        other number           → shortest round-trip form ("1.5")
        NaN / ±Infinity        → "NaN" / "Infinity" / "-Infinity"
        array / object         → compact JSON ('[1,2]', '{"a":1}')
        anything else          → text_convert(value)

    Functions, symbols, cyclic structures and objects whose toJSON throws
    have no JSON form and take the last rule.

    Args:
        value: Python value produced by quickjs.Context.eval()
        text_convert: Fallback conversion; ScriptRuntime passes the
                      engine's own String() so the result never depends on
                      Python object identity

    Returns:
        Text to substitute into the page
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, quickjs.Object):
        try:
            text = value.json()
        except quickjs.JSException:
            text = None
        if isinstance(text, str) and text:
            return text
        return text_convert(value)
    try:
        return json.dumps(value, separators=(",", ":"))
    except (TypeError, ValueError):
        return text_convert(value)


class ScriptRuntime:
    """
    One isolated script execution context

    Use as a context manager so the engine context is dropped as soon as
    the compile that owns it finishes:

        with ScriptRuntime() as runtime:
            runtime.declarations_run("const title = 'Home';")
            runtime.evaluate("title.toUpperCase()")   # → "HOME"

    Attributes:
        css_imports: Paths passed to importCSS() by script code, in call order
        js_imports: Paths passed to importJS() by script code, in call order
    """

    def __init__(
        self,
        time_limit: Optional[float] = None,
        memory_limit: Optional[int] = None,
    ) -> None:
        """
        Create the engine context and register the import host functions

        Args:
            time_limit: Optional CPU time limit in seconds for script code
            memory_limit: Optional memory limit in bytes for the context
        """
        self.context: Optional[quickjs.Context] = quickjs.Context()
        if time_limit is not None:
            self.context.set_time_limit(time_limit)
        if memory_limit is not None:
            self.context.set_memory_limit(memory_limit)

        # captures the builtins before template code can shadow them
        self.text_converter: Optional[quickjs.Object] = self.context.eval(f"({TEXT_CONVERT_SOURCE})")

        self.css_imports: List[str] = []
        self.js_imports: List[str] = []

        self.register("importCSS", self.cssImport_record)
        self.register("importJS", self.jsImport_record)

    def __enter__(self) -> "ScriptRuntime":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Release the engine context"""
        self.context = None
        self.text_converter = None

    def register(self, name: str, callback: Callable[..., Any]) -> None:
        """Expose a Python callable to script code as a global function"""
        self.context_get().add_callable(name, callback)

    def text_convert(self, value: Any) -> str:
        """
        Convert a value to text the way the script engine's String() does

        Null and undefined both reach Python as None and convert to "null".
        """
        if isinstance(value, str):
            return value
        return str(self.text_converter(value))

    def cssImport_record(self, *args: Any) -> None:
        """Host function behind importCSS(); a call without arguments is ignored"""
        if args:
            self.css_imports.append(self.text_convert(args[0]))

    def jsImport_record(self, *args: Any) -> None:
        """Host function behind importJS(); a call without arguments is ignored"""
        if args:
            self.js_imports.append(self.text_convert(args[0]))

    def declarations_run(self, code: str) -> None:
        """
        Execute the declarations block (phase 1)

        Top-level bindings (let, const, function, var) stay visible to
        every expression evaluated afterwards in this runtime.

        Args:
            code: Declarations script; empty text is a no-op

        Raises:
            DeclarationError: If the script throws or fails to compile
        """
        if not code:
            return
        try:
            self.context_get().eval(code)
        except quickjs.JSException as e:
            raise DeclarationError(f"error executing declarations: {e}")

    def evaluate(self, expr: str) -> str:
        """
        Evaluate one expression and stringify the result (phase 2)

        Args:
            expr: Raw expression text

        Returns:
            Text form of the result (see value_stringify)

        Raises:
            EvaluationError: If the expression throws or fails to compile
        """
        try:
            value = self.context_get().eval(expr)
        except quickjs.JSException as e:
            raise EvaluationError(
                f"error evaluating expression '{expr}': {e}",
                expression=expr,
            )
        return value_stringify(value, self.text_convert)

    def context_get(self) -> quickjs.Context:
        """Return the live engine context"""
        if self.context is None:
            raise RuntimeError("ScriptRuntime used after close()")
        return self.context
