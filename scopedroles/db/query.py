"""In-memory MongoDB-style query and update evaluation.

Implements the subset of MongoDB semantics the role operations rely on:
array-traversing dotted paths in filters, ``$elemMatch``/``$all``,
positional ``$[ident]`` updates with array filters, ``$addToSet`` with
``$each``, ``$pull`` with a condition, and pipeline updates built from
``$map``/``$filter``/``$cond`` expressions.
"""

import copy
from typing import Any, Dict, List, Optional, Union

from scopedroles.exceptions import ValidationError

_MISSING = object()

Update = Union[Dict[str, Any], List[Dict[str, Any]]]


def _is_operator_dict(value: Any) -> bool:
    return isinstance(value, dict) and bool(value) and all(
        isinstance(k, str) and k.startswith("$") for k in value
    )


def _truthy(value: Any) -> bool:
    """Aggregation truthiness: only null, false and zero are false."""
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0
    return True


class QueryEngine:
    """Unified MongoDB-style query engine for the in-memory store."""

    # ------------------------------------------------------------------
    # Field access
    # ------------------------------------------------------------------

    @staticmethod
    def resolve(document: Any, field: str) -> List[Any]:
        """Collect every value reachable through a dotted path.

        Arrays met along the way are traversed element by element, so
        ``roles.scope`` yields the scope of every grant.
        """
        return QueryEngine._resolve(document, field.split(".") if field else [])

    @staticmethod
    def _resolve(value: Any, keys: List[str]) -> List[Any]:
        if not keys:
            return [value]
        key, rest = keys[0], keys[1:]
        if isinstance(value, dict):
            if key in value:
                return QueryEngine._resolve(value[key], rest)
            return []
        if isinstance(value, list):
            if key.isdigit():
                idx = int(key)
                return QueryEngine._resolve(value[idx], rest) if idx < len(value) else []
            found: List[Any] = []
            for elem in value:
                if isinstance(elem, dict):
                    found.extend(QueryEngine._resolve(elem, keys))
            return found
        return []

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    @staticmethod
    def match(document: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
        """Check if a document matches a query.

        Args:
            document: Document to check
            query: Query conditions

        Returns:
            True if document matches query, False otherwise
        """
        if not query:
            return True
        for key, condition in query.items():
            if key == "$and":
                if not all(QueryEngine.match(document, sub) for sub in condition or []):
                    return False
            elif key == "$or":
                if not any(QueryEngine.match(document, sub) for sub in condition or []):
                    return False
            elif key == "$nor":
                if any(QueryEngine.match(document, sub) for sub in condition or []):
                    return False
            else:
                candidates = QueryEngine.resolve(document, key)
                if not QueryEngine.match_condition(candidates, condition):
                    return False
        return True

    @staticmethod
    def _equals(candidates: List[Any], target: Any) -> bool:
        for value in candidates:
            if value == target:
                return True
            if isinstance(value, list) and target in value:
                return True
        return False

    @staticmethod
    def match_condition(candidates: List[Any], condition: Any) -> bool:
        """Match resolved field values against a condition."""
        if not _is_operator_dict(condition):
            return QueryEngine._equals(candidates, condition)

        for op, operand in condition.items():
            if op == "$eq":
                if not QueryEngine._equals(candidates, operand):
                    return False
            elif op == "$ne":
                if QueryEngine._equals(candidates, operand):
                    return False
            elif op == "$in":
                if not any(QueryEngine._equals(candidates, item) for item in operand):
                    return False
            elif op == "$nin":
                if any(QueryEngine._equals(candidates, item) for item in operand):
                    return False
            elif op == "$all":
                if not operand or not all(
                    QueryEngine._equals(candidates, item) for item in operand
                ):
                    return False
            elif op == "$exists":
                if bool(operand) != bool(candidates):
                    return False
            elif op == "$elemMatch":
                if not any(
                    isinstance(value, list)
                    and any(QueryEngine._elem_matches(elem, operand) for elem in value)
                    for value in candidates
                ):
                    return False
            else:
                raise ValidationError(
                    f"Unsupported query operator: {op}", details={"operator": op}
                )
        return True

    @staticmethod
    def _elem_matches(elem: Any, condition: Any) -> bool:
        if _is_operator_dict(condition):
            return QueryEngine.match_condition([elem], condition)
        if isinstance(condition, dict):
            return isinstance(elem, dict) and QueryEngine.match(elem, condition)
        return elem == condition

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    @staticmethod
    def project(
        document: Dict[str, Any], projection: Optional[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Apply an inclusion or exclusion projection to a document."""
        if not projection:
            return copy.deepcopy(document)

        exclusion = any(not v for k, v in projection.items() if k != "_id")
        if not exclusion:
            include = [k for k, v in projection.items() if v and k != "_id"]
            result = {k: copy.deepcopy(document[k]) for k in include if k in document}
            if projection.get("_id", 1) and "_id" in document:
                result["_id"] = document["_id"]
            return result

        excluded = {k for k, v in projection.items() if not v}
        return {k: copy.deepcopy(v) for k, v in document.items() if k not in excluded}

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    @staticmethod
    def apply_update(
        document: Dict[str, Any],
        update: Update,
        array_filters: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """Apply update operations to a document in place.

        Args:
            document: Document to update
            update: Update operators, or a list of pipeline stages
            array_filters: Conditions for ``$[ident]`` path segments

        Returns:
            Updated document
        """
        if isinstance(update, list):
            return QueryEngine._apply_pipeline(document, update)

        filters = array_filters or []
        for op, payload in (update or {}).items():
            for field, value in payload.items():
                modifier = QueryEngine._modifier(op, value)
                QueryEngine._modify(document, field.split("."), modifier, filters)
        return document

    @staticmethod
    def _modifier(op: str, value: Any):
        if op == "$set":
            return lambda old: copy.deepcopy(value)
        if op == "$unset":
            return lambda old: _MISSING
        if op == "$push":
            items = value["$each"] if _is_operator_dict(value) else [value]

            def push(old: Any) -> List[Any]:
                if old is not _MISSING and not isinstance(old, list):
                    raise ValidationError(
                        "$push target is not an array",
                        details={"value": old},
                    )
                arr = list(old) if isinstance(old, list) else []
                arr.extend(copy.deepcopy(items))
                return arr

            return push
        if op == "$addToSet":
            items = value["$each"] if _is_operator_dict(value) else [value]

            def add_to_set(old: Any) -> List[Any]:
                arr = list(old) if isinstance(old, list) else []
                for item in items:
                    if item not in arr:
                        arr.append(copy.deepcopy(item))
                return arr

            return add_to_set
        if op == "$pull":

            def pull(old: Any) -> Any:
                if not isinstance(old, list):
                    return old
                return [e for e in old if not QueryEngine._elem_matches(e, value)]

            return pull
        raise ValidationError(
            f"Unsupported update operator: {op}", details={"operator": op}
        )

    @staticmethod
    def _array_filter_matches(
        elem: Any, ident: str, array_filters: List[Dict[str, Any]]
    ) -> bool:
        prefix = f"{ident}."
        for array_filter in array_filters:
            for key, condition in array_filter.items():
                if key == ident:
                    if not QueryEngine.match_condition([elem], condition):
                        return False
                elif key.startswith(prefix):
                    candidates = QueryEngine.resolve(elem, key[len(prefix):])
                    if not QueryEngine.match_condition(candidates, condition):
                        return False
        return True

    @staticmethod
    def _modify(
        container: Any, keys: List[str], modifier, array_filters: List[Dict[str, Any]]
    ) -> None:
        key, rest = keys[0], keys[1:]

        if key.startswith("$["):
            if not isinstance(container, list):
                return
            ident = key[2:-1]
            for idx, elem in enumerate(container):
                if ident and not QueryEngine._array_filter_matches(
                    elem, ident, array_filters
                ):
                    continue
                if rest:
                    QueryEngine._modify(elem, rest, modifier, array_filters)
                else:
                    container[idx] = modifier(elem)
            return

        if isinstance(container, list):
            idx = int(key)
            while idx >= len(container):
                container.append(None if not rest else {})
            if rest:
                QueryEngine._modify(container[idx], rest, modifier, array_filters)
            else:
                container[idx] = modifier(container[idx])
            return

        if not isinstance(container, dict):
            return

        if rest:
            child = container.get(key)
            if not isinstance(child, (dict, list)):
                child = {}
                container[key] = child
            QueryEngine._modify(child, rest, modifier, array_filters)
            return

        new_value = modifier(container.get(key, _MISSING))
        if new_value is _MISSING:
            container.pop(key, None)
        else:
            container[key] = new_value

    # ------------------------------------------------------------------
    # Pipeline updates
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_pipeline(
        document: Dict[str, Any], stages: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        for stage in stages:
            for op, payload in stage.items():
                if op == "$set":
                    values = {
                        field: QueryEngine.evaluate(expr, document)
                        for field, expr in payload.items()
                    }
                    for field, value in values.items():
                        QueryEngine._modify(
                            document, field.split("."), lambda old, v=value: v, []
                        )
                elif op == "$unset":
                    fields = [payload] if isinstance(payload, str) else payload
                    for field in fields:
                        QueryEngine._modify(
                            document, field.split("."), lambda old: _MISSING, []
                        )
                else:
                    raise ValidationError(
                        f"Unsupported pipeline stage: {op}", details={"stage": op}
                    )
        return document

    @staticmethod
    def _path_value(value: Any, path: List[str]) -> Any:
        for key in path:
            if isinstance(value, dict):
                value = value.get(key)
            elif isinstance(value, list):
                value = [
                    elem.get(key) for elem in value if isinstance(elem, dict)
                ]
            else:
                return None
        return value

    @staticmethod
    def evaluate(
        expr: Any, root: Dict[str, Any], variables: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Evaluate an aggregation expression against ``root``."""
        variables = variables or {}

        if isinstance(expr, str):
            if expr.startswith("$$"):
                name, *path = expr[2:].split(".")
                if name in variables:
                    base = variables[name]
                else:
                    raise ValidationError(
                        f"Undefined variable: {name}", details={"variable": name}
                    )
                return QueryEngine._path_value(base, path)
            if expr.startswith("$"):
                return QueryEngine._path_value(root, expr[1:].split("."))
            return expr

        if isinstance(expr, list):
            return [QueryEngine.evaluate(e, root, variables) for e in expr]

        if not isinstance(expr, dict):
            return expr

        if not _is_operator_dict(expr) or len(expr) != 1:
            return {k: QueryEngine.evaluate(v, root, variables) for k, v in expr.items()}

        op, args = next(iter(expr.items()))

        def ev(e: Any, extra: Optional[Dict[str, Any]] = None) -> Any:
            scope = {**variables, **extra} if extra else variables
            return QueryEngine.evaluate(e, root, scope)

        if op == "$literal":
            return copy.deepcopy(args)
        if op == "$map":
            items = ev(args["input"])
            if items is None:
                return None
            name = args.get("as", "this")
            return [ev(args["in"], {name: item}) for item in items]
        if op == "$filter":
            items = ev(args["input"])
            if items is None:
                return None
            name = args.get("as", "this")
            return [item for item in items if _truthy(ev(args["cond"], {name: item}))]
        if op == "$cond":
            if isinstance(args, dict):
                condition, then, otherwise = args["if"], args["then"], args["else"]
            else:
                condition, then, otherwise = args
            return ev(then) if _truthy(ev(condition)) else ev(otherwise)
        if op == "$mergeObjects":
            merged: Dict[str, Any] = {}
            for part in ev(args if isinstance(args, list) else [args]):
                if part:
                    merged.update(part)
            return merged

        values = ev(args if isinstance(args, list) else [args])
        if op == "$eq":
            return values[0] == values[1]
        if op == "$not":
            return not _truthy(values[0])
        if op == "$in":
            return values[0] in (values[1] or [])
        raise ValidationError(
            f"Unsupported expression operator: {op}", details={"operator": op}
        )


__all__ = ["QueryEngine", "Update"]
