"""
Lexical scope frames for the skiff interpreter.

Frames form a chain via ``enclosing``. A closure keeps a reference to the
frame it was declared in, so that frame outlives the call that created it.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

from .values import Value, NULL


@dataclass(eq=False)
class Environment:
    """
    A single scope containing variable bindings.

    Membership is decided by key, so a name bound to ``null`` is still
    defined in its frame.
    """
    enclosing: Optional["Environment"] = None
    name: str = "block"  # For debugging
    variables: Dict[str, Value] = field(default_factory=dict)

    def _chain(self) -> Iterator["Environment"]:
        env = self
        while env is not None:
            yield env
            env = env.enclosing

    def define(self, name: str, value: Value) -> None:
        """Bind a name in this frame, shadowing any outer binding."""
        self.variables[name] = value

    def get(self, name: str) -> Value:
        """Look up a name walking outward; undefined names read as null."""
        for env in self._chain():
            if name in env.variables:
                return env.variables[name]
        return NULL

    def assign(self, name: str, value: Value) -> None:
        """
        Rebind a name in the nearest frame that defines it.

        If no frame in the chain defines the name, it is declared in this
        (the innermost) frame.
        """
        for env in self._chain():
            if name in env.variables:
                env.variables[name] = value
                return
        self.variables[name] = value

    def contains(self, name: str) -> bool:
        """Check if a name is defined in this frame or any enclosing one."""
        return any(name in env.variables for env in self._chain())

    def depth(self) -> int:
        return sum(1 for _ in self._chain()) - 1

    def __repr__(self) -> str:
        return f"Environment({self.name}, {sorted(self.variables)}, depth={self.depth()})"
