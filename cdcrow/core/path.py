from __future__ import annotations
import re
from functools import lru_cache
from typing import Any, Optional, List, Tuple, Union


class PathSyntaxError(ValueError):
    pass


Selector = Tuple[str, Any, bool]  # (kind, argument, safe)
Segment = Tuple[Optional[str], Tuple[Selector, ...]]


class PathResolver:
    """
    Resolve JSONPath-style expressions against parsed JSON documents.

    The leading '$' root marker is optional. Supported selectors per segment:
      - key                  e.g. user
      - ['key']              quoted key (may contain dots or spaces)
      - [N] / [-N]           index, negative counts from the end
      - [*]                  wildcard (collect)
      - [?field==value]      filter (==,!=,>,<,>=,<=,~= regex); the JSONPath
                             form [?(@.field == 'value')] is accepted too
      - ?[N]                 safe index (returns None if OOB)

    Examples:
      $.user.id
      $.items[*].price
      $.user.emails[?type=="work"]?[0].value
      $['meta data'].source
    """

    _head = re.compile(r"^([^\[\]?]*)(.*)$")  # name then rest
    _bracket = re.compile(r"^\[(.*?)\](.*)$")
    _index = re.compile(r"^-?\d+$")

    @classmethod
    def get(cls, obj: Any, path: Optional[str]) -> Any:
        if path is None:
            return None

        cur = obj
        for key, selectors in cls.compile(path):
            if cur is None:
                return None

            if key and isinstance(cur, list):
                mapped: List[Any] = []
                for el in cur:
                    res = cls._apply_segment(el, key, selectors) if isinstance(el, dict) else None
                    if isinstance(res, list):
                        mapped.extend(res)
                    else:
                        mapped.append(res)
                cur = mapped
                continue

            cur = cls._apply_segment(cur, key, selectors)

        return cur

    @classmethod
    def validate(cls, path: str) -> None:
        cls.compile(path)

    @staticmethod
    @lru_cache(maxsize=512)
    def compile(path: str) -> Tuple[Segment, ...]:
        if not isinstance(path, str) or not path.strip():
            raise PathSyntaxError("Path must be a non-empty string.")

        body = path.strip()
        if body.startswith("$"):
            body = body[1:]
            if body.startswith("."):
                body = body[1:]
                if not body:
                    raise PathSyntaxError(f"Malformed path '{path}': trailing '.'")
        if not body:
            return ()

        segments: List[Segment] = []
        for raw in PathResolver._split(body, path):
            if not raw:
                raise PathSyntaxError(f"Malformed path '{path}': empty segment (deep scan is not supported)")

            m = PathResolver._head.match(raw)
            key, rest = m.group(1), m.group(2)
            selectors: List[Selector] = []
            while rest:
                safe = False
                if rest.startswith("?["):
                    safe = True
                    rest = rest[1:]

                bm = PathResolver._bracket.match(rest)
                if not bm:
                    raise PathSyntaxError(f"Malformed path at '{rest}' in '{path}'")
                selector, rest = bm.group(1).strip(), bm.group(2)
                selectors.append(PathResolver._parse_selector(selector, safe, path))

            segments.append((key or None, tuple(selectors)))

        return tuple(segments)

    @staticmethod
    def _split(body: str, path: str) -> List[str]:
        parts: List[str] = []
        buf: List[str] = []
        depth = 0
        quote: Optional[str] = None
        for ch in body:
            if quote:
                buf.append(ch)
                if ch == quote:
                    quote = None
                continue

            if ch in ("'", '"'):
                quote = ch
            elif ch == "[":
                depth += 1
            elif ch == "]":
                depth -= 1
                if depth < 0:
                    raise PathSyntaxError(f"Unbalanced ']' in path '{path}'")
            elif ch == "." and depth == 0:
                parts.append("".join(buf))
                buf = []
                continue
            buf.append(ch)

        if quote or depth:
            raise PathSyntaxError(f"Unbalanced brackets or quotes in path '{path}'")

        parts.append("".join(buf))
        return parts

    @staticmethod
    def _parse_selector(selector: str, safe: bool, path: str) -> Selector:
        if selector == "*":
            return ("wildcard", None, safe)

        if PathResolver._index.match(selector):
            return ("index", int(selector), safe)

        if len(selector) >= 2 and selector[0] == selector[-1] and selector[0] in ("'", '"'):
            return ("key", selector[1:-1], safe)

        if selector.startswith("?"):
            expr = selector[1:].strip()
            if expr.startswith("(") and expr.endswith(")"):
                expr = expr[1:-1].strip()
            return ("filter", PathResolver._parse_predicate(expr), safe)

        raise PathSyntaxError(f"Unsupported selector '[{selector}]' in path '{path}'")

    @classmethod
    def _apply_segment(cls, base: Any, key: Optional[str], selectors: Tuple[Selector, ...]) -> Any:
        cur = base
        if key is not None:
            cur = base.get(key) if isinstance(base, dict) else None

        for selector in selectors:
            cur = cls._apply_selector(cur, selector)

        return cur

    @classmethod
    def _apply_selector(cls, cur: Any, selector: Selector) -> Any:
        kind, arg, _safe = selector
        if kind == "wildcard":
            if isinstance(cur, list):
                return cur
            if isinstance(cur, dict):
                return list(cur.values())
            return None

        if kind == "index":
            if not isinstance(cur, list):
                return None
            if -len(cur) <= arg < len(cur):
                return cur[arg]
            return None

        if kind == "key":
            return cur.get(arg) if isinstance(cur, dict) else None

        # filter
        if not isinstance(cur, list):
            return None
        field, op, lit = arg
        out = []
        for el in cur:
            if not isinstance(el, dict):
                continue
            if cls._match(el.get(field), op, lit):
                out.append(el)
        return out

    @staticmethod
    def _parse_predicate(expr: str) -> Tuple[str, str, Union[str, float, bool, None]]:
        for op in ("==", "!=", ">=", "<=", "~=", ">", "<"):
            if op in expr:
                left, right = expr.split(op, 1)
                left = left.strip()
                if left.startswith("@."):
                    left = left[2:]
                right = right.strip()
                if right[:1] in ("'", '"'):
                    return left, op, right.strip('"').strip("'")
                if right in ("true", "false"):
                    return left, op, right == "true"
                if right == "null":
                    return left, op, None
                try:
                    return left, op, float(right)
                except ValueError:
                    return left, op, right
        raise PathSyntaxError(f"Unsupported filter expression '{expr}'")

    @staticmethod
    def _match(val: Any, op: str, lit: Union[str, float, bool, None]) -> bool:
        if op == "==":
            return val == lit
        if op == "!=":
            return val != lit
        if op == "~=":
            if val is None:
                return False
            try:
                return re.search(str(lit), str(val)) is not None
            except re.error:
                return False

        try:
            vf = float(val) if val is not None and not isinstance(val, bool) else None
        except (TypeError, ValueError):
            vf = None
        if vf is None or isinstance(lit, bool) or not isinstance(lit, (int, float)):
            return False
        if op == ">":
            return vf > lit
        if op == "<":
            return vf < lit
        if op == ">=":
            return vf >= lit
        if op == "<=":
            return vf <= lit
        return False
