"""Export tree querysets as networkx or rustworkx graphs.

Only rows of the queryset become nodes. A parent reference becomes a
parent -> child edge when both rows are present, so exporting
``descendants(node)`` gives the forest of the node's subtrees.
"""

from .utils import get_queryset_characteristics, model_to_dict, parent_links

try:
    import networkx as nx
except ImportError:
    nx = None  # type: ignore[assignment]

try:
    import rustworkx as rx
except ImportError:
    rx = None  # type: ignore[assignment]

HAS_NETWORKX = nx is not None
HAS_RUSTWORKX = rx is not None

__all__ = ["json_from_queryset", "nx_from_queryset", "rx_from_queryset"]


def _require(library, name):
    if library is None:
        raise ImportError(f"{name} is not installed. Install it with: pip install django-recursive-tree[transforms]")


def _tree_rows(queryset, fields, date_strf):
    """Return ([(pk, attributes)], [(parent_pk, child_pk)]) for the rows of a tree queryset."""
    _model, config = get_queryset_characteristics(queryset)
    nodes = list(queryset)
    rows = [(node.pk, model_to_dict(node, fields=fields, date_strf=date_strf) if fields else {}) for node in nodes]
    return rows, parent_links(nodes, config)


def nx_from_queryset(
    queryset, graph_attributes_dict=None, node_attribute_fields_list=None, date_strf=None, digraph=False
):
    """Return a networkx graph keyed by primary key, with node attributes taken from node_attribute_fields_list."""
    _require(nx, "networkx")
    graph = (nx.DiGraph if digraph else nx.Graph)(**(graph_attributes_dict or {}))
    rows, links = _tree_rows(queryset, node_attribute_fields_list, date_strf)
    graph.add_nodes_from(rows)
    graph.add_edges_from(links)
    return graph


def rx_from_queryset(queryset, graph_attributes=None, node_attribute_fields_list=None, date_strf=None, digraph=False):
    """Return a rustworkx graph.

    rustworkx indexes nodes by position, so each node payload is a dict carrying the primary key under ``"pk"``.
    """
    _require(rx, "rustworkx")
    graph = rx.PyDiGraph(check_cycle=False) if digraph else rx.PyGraph()
    if graph_attributes is not None:
        graph.attrs = graph_attributes

    rows, links = _tree_rows(queryset, node_attribute_fields_list, date_strf)
    indices = graph.add_nodes_from([{"pk": pk, **attributes} for pk, attributes in rows])
    index_of = {pk: index for (pk, _attributes), index in zip(rows, indices)}
    graph.add_edges_from([(index_of[parent_pk], index_of[child_pk], None) for parent_pk, child_pk in links])
    return graph


def _stringify(data):
    return {str(key): str(value) for key, value in (data or {}).items()}


def json_from_queryset(
    queryset, graph_attributes=None, node_attribute_fields_list=None, date_strf=None, digraph=True
):
    """Serialize a tree queryset to node-link JSON through rustworkx. Attribute values become strings."""
    graph = rx_from_queryset(queryset, graph_attributes, node_attribute_fields_list, date_strf, digraph)
    return rx.node_link_json(graph, graph_attrs=_stringify, node_attrs=_stringify)
