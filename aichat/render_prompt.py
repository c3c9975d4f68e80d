"""Render REPL prompt templates.

The template is plain text mixed with ``{...}`` blocks:

- ``{var}`` is replaced by the value of ``var``.
- ``{?var <template>}`` renders ``template`` when ``var`` is truthy.
- ``{!var <template>}`` renders ``template`` when ``var`` is falsy.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Union


@dataclass
class _Text:
    text: str


@dataclass
class _Variable:
    name: str


@dataclass
class _Block:
    when_true: bool
    name: str
    exprs: list["_Expr"] = field(default_factory=list)


_Expr = Union[_Text, _Variable, _Block]


def render_prompt(template: str, variables: Mapping[str, str]) -> str:
    return _eval_exprs(_parse_template(template), variables)


def _parse_template(template: str) -> list[_Expr]:
    exprs: list[_Expr] = []
    current: list[str] = []
    depth = 0
    for ch in template:
        if depth:
            if ch == "}":
                depth -= 1
                if depth == 0:
                    if current:
                        exprs.append(_parse_block("".join(current)))
                        current.clear()
                else:
                    current.append(ch)
            else:
                if ch == "{":
                    depth += 1
                current.append(ch)
        elif ch == "{":
            depth += 1
            _add_text(exprs, current)
        else:
            current.append(ch)
    _add_text(exprs, current)
    return exprs


def _parse_block(value: str) -> _Expr:
    name, sep, tail = value.partition(" ")
    if not sep:
        return _Variable(value)
    if name.startswith("?"):
        return _Block(True, name[1:], _parse_template(tail))
    if name.startswith("!"):
        return _Block(False, name[1:], _parse_template(tail))
    return _Text(f"{{{value}}}")


def _add_text(exprs: list[_Expr], current: list[str]) -> None:
    if current:
        exprs.append(_Text("".join(current)))
        current.clear()


def _truthy(value: str) -> bool:
    return value not in ("", "0", "false")


def _eval_exprs(exprs: list[_Expr], variables: Mapping[str, str]) -> str:
    parts: list[str] = []
    for expr in exprs:
        if isinstance(expr, _Text):
            parts.append(expr.text)
        elif isinstance(expr, _Variable):
            parts.append(variables.get(expr.name, ""))
        elif _truthy(variables.get(expr.name, "")) == expr.when_true:
            parts.append(_eval_exprs(expr.exprs, variables))
    return "".join(parts)