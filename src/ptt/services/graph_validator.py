"""
Graph validation for the task template library.

The template graph is an arena keyed by order code; edges are the preceding
codes of each template. Validation runs over plain data so it can gate a
template write before anything is persisted.

Two independent checks guard a write:

- ordering: every preceding code sorts strictly before its owner
  (shorter codes first, then lexicographic). Enforced consistently this alone
  makes cycles impossible.
- acyclicity: depth-first traversal through preceding edges, kept as a guard
  against legacy rows that predate the ordering rule.
"""

from collections.abc import Iterable, Mapping

from ptt.errors import CycleError, MissingPrecedingError, OrderingError

# ============================================================================
# Ordering
# ============================================================================


def order_key(code: str) -> tuple[int, str]:
    """
    Sort key for order codes: length first, then lexicographic.

    Examples:
        >>> sorted(["AA", "B", "A", "Z"], key=order_key)
        ['A', 'B', 'Z', 'AA']
    """
    return (len(code), code)


def precedes(a: str, b: str) -> bool:
    """True if order code `a` sorts strictly before `b`."""
    return order_key(a) < order_key(b)


def find_ordering_violations(order: str, preceding: Iterable[str]) -> list[str]:
    """
    Return the preceding codes that do not sort strictly before `order`.

    Args:
        order: The owning template's order code
        preceding: Proposed preceding codes

    Returns:
        Offending codes in input order (empty when valid)
    """
    return [code for code in preceding if not precedes(code, order)]


# ============================================================================
# Cycle Detection
# ============================================================================


def find_cycle(
    order: str,
    preceding: Iterable[str],
    graph: Mapping[str, Iterable[str]],
) -> list[str] | None:
    """
    Depth-first search from `order` through preceding edges.

    The current path is carried along; a code that reappears on it closes a
    cycle and the traversal stops immediately.

    Args:
        order: Code to start from
        preceding: Its preceding codes
        graph: order code -> preceding codes for every known template

    Returns:
        The cycle as a list of codes ending with the repeated code, or None
    """

    def visit(code: str, edges: Iterable[str], path: list[str]) -> list[str] | None:
        if code in path:
            return path[path.index(code) :] + [code]

        new_path = path + [code]
        for next_code in edges:
            next_edges = graph.get(next_code)
            # Unknown codes are reported by the existence check, not here
            if next_edges is None:
                continue
            cycle = visit(next_code, next_edges, new_path)
            if cycle:
                return cycle
        return None

    return visit(order, list(preceding), [])


def has_circular_dependency(
    order: str,
    preceding: Iterable[str],
    graph: Mapping[str, Iterable[str]],
) -> bool:
    """True if following preceding edges from `order` leads back onto the path."""
    return find_cycle(order, preceding, graph) is not None


# ============================================================================
# Template Write Validation
# ============================================================================


def overlay_graph(
    order: str,
    preceding: Iterable[str],
    existing: Mapping[str, Iterable[str]],
    replaces: str | None = None,
) -> dict[str, list[str]]:
    """
    Build the hypothetical graph after a template write.

    Args:
        order: Candidate order code
        preceding: Candidate preceding codes
        existing: Current order -> preceding map
        replaces: Previous order code of the template being updated, if any

    Returns:
        New map with the candidate's entry overlaid
    """
    graph = {code: list(edges) for code, edges in existing.items()}
    if replaces is not None and replaces != order:
        graph.pop(replaces, None)
    graph[order] = list(preceding)
    return graph


def validate_template_graph(
    order: str,
    preceding: Iterable[str],
    existing: Mapping[str, Iterable[str]],
    replaces: str | None = None,
) -> None:
    """
    Validate a proposed template write against the whole template graph.

    Args:
        order: Candidate order code
        preceding: Proposed preceding codes
        existing: Current order -> preceding map of all templates
        replaces: Previous order code when updating a template

    Raises:
        CycleError: If the overlaid graph has a cycle through the candidate
        OrderingError: If a preceding code does not sort before the candidate
        MissingPrecedingError: If a preceding code names no known template
    """
    preceding = list(dict.fromkeys(preceding))
    if not preceding:
        return

    graph = overlay_graph(order, preceding, existing, replaces)

    cycle = find_cycle(order, preceding, graph)
    if cycle:
        raise CycleError(
            f"Circular dependency detected in preceding tasks: {' -> '.join(cycle)}",
            cycle=cycle,
        )

    invalid = find_ordering_violations(order, preceding)
    if invalid:
        raise OrderingError(
            "Invalid preceding task(s): preceding order codes must sort before "
            f"'{order}'. Invalid: {', '.join(invalid)}",
            invalid_codes=invalid,
        )

    known = set(existing)
    if replaces is not None and replaces != order:
        known.discard(replaces)
    missing = [code for code in preceding if code not in known]
    if missing:
        raise MissingPrecedingError(
            f"Invalid preceding task(s): these order codes do not exist: {', '.join(missing)}",
            missing_codes=missing,
        )
