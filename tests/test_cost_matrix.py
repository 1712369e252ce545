import itertools
import math

import numpy as np
import pytest

from cost_matrix import (
    CostColumn,
    CostMatrix,
    CostMatrixInteger,
    CostRow,
    Edge,
    InfeasibleMatrixError,
    VertexNotAvailableError,
    make_vector_mapping,
)
from graph import Graph

INF = math.inf


def best_tour_cost(D, required=()):
    """Brute-force optimal tour cost, optionally forcing some edges."""
    n = len(D)
    best = INF
    for perm in itertools.permutations(range(1, n)):
        tour = (0,) + perm + (0,)
        edges = set(zip(tour, tour[1:]))
        if not set(required) <= edges:
            continue
        best = min(best, sum(D[u][v] for u, v in edges))
    return best


def random_graph(n, seed):
    rng = np.random.default_rng(seed)
    D = rng.integers(1, 50, size=(n, n)).astype(float)
    np.fill_diagonal(D, 0)
    return D


# ------------------------------------------------------------------
#  Edge / CostMatrixInteger
# ------------------------------------------------------------------
def test_edge_is_value_type():
    assert Edge(1, 2) == Edge(1, 2)
    assert Edge(1, 2) == (1, 2)
    assert Edge(1, 2) != Edge(2, 1)
    assert Edge(0, 5) < Edge(1, 0)
    assert {Edge(1, 2): "a"}[Edge(1, 2)] == "a"


def test_cell_remembers_source_edge():
    cell = CostMatrixInteger(7.0, (2, 3))
    assert cell.edge == Edge(2, 3)
    assert cell.value == 7
    assert isinstance(cell.value, int)
    assert not cell.is_infinite


def test_infinite_cell_absorbs_subtraction():
    cell = CostMatrixInteger(INF, Edge(0, 0))
    cell -= 5
    cell -= CostMatrixInteger(3, Edge(1, 1))
    assert cell.is_infinite
    assert cell.value == INF


def test_set_infinite_then_subtract_stays_infinite():
    cell = CostMatrixInteger(12, Edge(0, 1))
    cell.set_infinite()
    cell -= 12
    assert cell.is_infinite


def test_finite_subtraction():
    cell = CostMatrixInteger(12, Edge(0, 1))
    cell -= CostMatrixInteger(5, Edge(2, 1))
    assert cell == 7


def test_subtracting_infinite_is_rejected():
    cell = CostMatrixInteger(12, Edge(0, 1))
    with pytest.raises(ValueError, match="infinite"):
        cell -= CostMatrixInteger(INF, Edge(1, 1))
    with pytest.raises(ValueError, match="infinite"):
        cell -= INF


def test_subtracting_non_integer_is_rejected():
    cell = CostMatrixInteger(10, Edge(0, 1))
    with pytest.raises(ValueError, match="non-integer"):
        cell -= 2.5
    assert cell == 10
    cell -= 4.0
    assert cell == 6


def test_infinite_is_larger_than_any_finite():
    big = CostMatrixInteger(10 ** 12, Edge(0, 1))
    inf_a = CostMatrixInteger(INF, Edge(0, 2))
    inf_b = CostMatrixInteger(INF, Edge(0, 3))
    assert big < inf_a
    assert not inf_a < big
    assert inf_a == inf_b
    assert not inf_a < inf_b
    assert min([inf_a, big, inf_b]) is big


def test_non_integer_and_nan_costs_rejected():
    with pytest.raises(ValueError, match="integer"):
        CostMatrixInteger(1.5, Edge(0, 1))
    with pytest.raises(ValueError, match="NaN"):
        CostMatrixInteger(float("nan"), Edge(0, 1))


def test_make_vector_mapping_is_gap_free():
    mapping = make_vector_mapping([True, False, True, True, False])
    assert mapping == {0: 0, 2: 1, 3: 2}
    assert make_vector_mapping([]) == {}


# ------------------------------------------------------------------
#  Construction
# ------------------------------------------------------------------
def test_construction_without_edges(graph4, square4):
    m = CostMatrix(graph4)
    assert m.shape == (4, 4)
    assert m.row_vertices == [0, 1, 2, 3]
    for i in range(4):
        for j in range(4):
            if i == j:
                assert m[i, j].is_infinite
            else:
                assert m[i, j] == square4[i][j]
                assert m[i, j].edge == Edge(i, j)


def test_include_edge_condenses_row_and_column(graph4):
    m = CostMatrix(graph4, include=[Edge(0, 1)])
    assert m.shape == (3, 3)
    assert m.row_mapping == {1: 0, 2: 1, 3: 2}
    assert m.column_mapping == {0: 0, 2: 1, 3: 2}
    assert m.row_vertices == [1, 2, 3]
    assert m.column_vertices == [0, 2, 3]
    np.testing.assert_array_equal(m.to_numpy(), [
        [10, 35, 25],
        [15, INF, 30],
        [20, 30, INF],
    ])


def test_committed_vertex_is_not_selectable(graph4):
    m = CostMatrix(graph4, include=[(0, 1)])
    assert not m.is_row_available(0)
    assert not m.is_column_available(1)
    assert m.is_row_available(1)
    assert m.is_column_available(0)
    with pytest.raises(VertexNotAvailableError, match="Row 0"):
        m.condensed_row(0)
    with pytest.raises(VertexNotAvailableError, match="Column 1"):
        m.condensed_column(1)
    with pytest.raises(VertexNotAvailableError):
        m[0, 2]
    with pytest.raises(VertexNotAvailableError):
        m[Edge(2, 1)]
    with pytest.raises(VertexNotAvailableError):
        m.get_row(0)
    with pytest.raises(VertexNotAvailableError):
        m.get_column(1)


def test_exclude_edge_marks_infinite_without_resizing(graph4, square4):
    m = CostMatrix(graph4, exclude=[Edge(0, 1)])
    assert m.shape == (4, 4)
    assert square4[0][1] == 10
    assert m[0, 1].is_infinite
    assert m[1, 0] == 10
    assert m[0, 2] == 15


def test_exclude_on_committed_vertex_is_skipped(graph4):
    m = CostMatrix(graph4, include=[(0, 1)], exclude=[(0, 2), (3, 1), (2, 3)])
    assert m.shape == (3, 3)
    assert m[2, 3].is_infinite
    assert m[3, 2] == 30


@pytest.mark.parametrize("include", [
    [],
    [(0, 1)],
    [(0, 1), (1, 2)],
    [(0, 1), (2, 1)],
    [(3, 0), (4, 3), (1, 4)],
])
def test_condensed_dimensions(include):
    graph = Graph(random_graph(6, seed=1))
    m = CostMatrix(graph, include=include)
    origins = {u for u, _ in include}
    destinations = {v for _, v in include}
    assert m.num_rows == 6 - len(origins)
    assert m.num_columns == 6 - len(destinations)
    assert sorted(m.row_mapping.values()) == list(range(m.num_rows))
    assert sorted(m.column_mapping.values()) == list(range(m.num_columns))
    assert set(m.row_mapping) == set(range(6)) - origins
    assert set(m.column_mapping) == set(range(6)) - destinations


def test_vertex_out_of_range_rejected(graph4):
    with pytest.raises(ValueError, match="outside"):
        CostMatrix(graph4, include=[(4, 0)])
    with pytest.raises(ValueError, match="outside"):
        CostMatrix(graph4, exclude=[(0, -1)])


def test_self_loop_include_rejected(graph4):
    with pytest.raises(ValueError, match="self-loop"):
        CostMatrix(graph4, include=[(2, 2)])


def test_self_loop_cells_ignore_graph_diagonal():
    graph = Graph([[7, 3], [4, 7]])
    m = CostMatrix(graph)
    assert m[0, 0].is_infinite
    assert m[1, 1].is_infinite
    assert m.reduce() == 7


def test_edge_and_tuple_access_return_same_cell(graph4):
    m = CostMatrix(graph4)
    assert m[2, 3] is m[Edge(2, 3)]
    m[2, 3] -= 4
    assert m[Edge(2, 3)] == 26


def test_sibling_matrices_share_no_state(graph4):
    left = CostMatrix(graph4, include=[(0, 1)])
    right = CostMatrix(graph4, exclude=[(0, 1)])
    left.reduce()
    assert right[1, 0] == 10
    assert right[2, 0] == 15
    assert graph4(1, 0) == 10


# ------------------------------------------------------------------
#  Reduction
# ------------------------------------------------------------------
def test_reduce_four_city_scenario(graph4, capsys):
    m = CostMatrix(graph4, verbose=True)
    assert m.reduce() == 70
    # row minima 10 + 10 + 15 + 20, then column minima 0 + 0 + 5 + 10
    assert "rows=55, columns=15, total=70" in capsys.readouterr().out
    np.testing.assert_array_equal(m.to_numpy(), [
        [INF, 0, 0, 0],
        [0, INF, 20, 5],
        [0, 20, INF, 5],
        [0, 5, 5, INF],
    ])


def test_reduce_leaves_zero_in_every_row_and_column():
    graph = Graph(random_graph(7, seed=3))
    m = CostMatrix(graph, include=[(0, 3), (3, 5)], exclude=[(1, 2), (6, 4)])
    m.reduce()
    for v in m.row_vertices:
        assert any(cell == 0 for cell in m.get_row(v))
    for v in m.column_vertices:
        assert any(cell == 0 for cell in m.get_column(v))


def test_reduce_twice_adds_nothing(graph4):
    m = CostMatrix(graph4, exclude=[(0, 1)])
    assert m.reduce() > 0
    assert m.reduce() == 0


def test_reduce_never_unsets_excluded_cells(graph4):
    m = CostMatrix(graph4, exclude=[(0, 1), (3, 0)])
    m.reduce()
    assert m[0, 1].is_infinite
    assert m[3, 0].is_infinite


def test_reduce_with_include(graph4):
    m = CostMatrix(graph4, include=[(0, 1)])
    assert m.reduce() == 70


def test_reduce_rows_before_columns():
    # rows: 2 + 4 + 5, columns: 0 + 0 + 1 -> 12 (columns first would give 10)
    graph = Graph([[0, 2, 3], [4, 0, 9], [5, 9, 0]])
    m = CostMatrix(graph)
    assert m.reduce() == 12
    np.testing.assert_array_equal(m.to_numpy(), [
        [INF, 0, 0],
        [0, INF, 4],
        [0, 4, INF],
    ])


def test_all_infinite_row_is_fatal():
    graph = Graph([[0, 4, 9], [2, 0, 6], [3, 8, 0]])
    m = CostMatrix(graph, exclude=[(0, 1), (0, 2)])
    with pytest.raises(InfeasibleMatrixError, match="no finite cost"):
        m.reduce()


def test_all_infinite_column_is_fatal():
    graph = Graph([[0, 4, 9], [2, 0, 6], [3, 8, 0]])
    m = CostMatrix(graph, exclude=[(1, 0), (2, 0)])
    with pytest.raises(InfeasibleMatrixError, match="CostColumn"):
        m.reduce()


def test_empty_matrix_reduces_to_zero():
    m = CostMatrix(Graph(np.zeros((0, 0))))
    assert m.shape == (0, 0)
    assert m.reduce() == 0


@pytest.mark.parametrize("seed", range(5))
def test_bound_never_exceeds_optimal_tour(seed):
    D = random_graph(6, seed)
    graph = Graph(D)
    m = CostMatrix(graph)
    assert m.reduce() <= best_tour_cost(D)

    forced = [Edge(0, 2), Edge(2, 4)]
    child = CostMatrix(graph, include=forced)
    committed = sum(graph(*e) for e in forced)
    assert committed + child.reduce() <= best_tour_cost(D, required=forced)


# ------------------------------------------------------------------
#  Row / column views
# ------------------------------------------------------------------
def test_row_view_walks_available_columns(graph4):
    m = CostMatrix(graph4, include=[(0, 1)])
    row = m.get_row(2)
    assert isinstance(row, CostRow)
    assert len(row) == 3
    assert row.vertex == 2
    assert row.other_vertices == [0, 2, 3]
    assert [cell.edge for cell in row] == [Edge(2, 0), Edge(2, 2), Edge(2, 3)]
    assert row[2] is m[2, 3]


def test_column_view_walks_available_rows(graph4):
    m = CostMatrix(graph4, include=[(0, 1)])
    column = m.get_column(3)
    assert isinstance(column, CostColumn)
    assert len(column) == 3
    assert column.vertex == 3
    assert [cell.edge for cell in column] == [Edge(1, 3), Edge(2, 3), Edge(3, 3)]


def test_view_index_out_of_range(graph4):
    row = CostMatrix(graph4).get_row(1)
    with pytest.raises(IndexError):
        row[4]
    with pytest.raises(IndexError):
        row[-1]


def test_view_mutation_is_visible_in_matrix(graph4):
    m = CostMatrix(graph4)
    column = m.get_column(0)
    column[3] -= 20
    assert m[3, 0] == 0


def test_view_iterator_advances_size_times(graph4):
    row = CostMatrix(graph4).get_row(0)
    it, end = row.begin(), row.end()
    steps = 0
    while it != end:
        it.advance()
        steps += 1
    assert steps == len(row) == 4
    assert it.at_end
    it.advance()
    assert it == end
    assert it.position == 4


def test_view_iterator_equality(graph4):
    m = CostMatrix(graph4)
    assert m.get_row(1).begin() == m.get_row(1).begin()
    assert m.get_row(1).begin() != m.get_row(2).begin()
    assert m.get_row(1).begin() != m.get_column(1).begin()
    other = CostMatrix(graph4)
    assert m.get_row(1).begin() != other.get_row(1).begin()


# ------------------------------------------------------------------
#  Whole-matrix iterator
# ------------------------------------------------------------------
def test_matrix_iterator_is_row_major(graph4):
    m = CostMatrix(graph4, include=[(0, 1)])
    edges = [cell.edge for cell in m]
    assert len(edges) == 9
    assert edges == [Edge(i, j) for i in (1, 2, 3) for j in (0, 2, 3)]


def test_matrix_iterator_end_state(graph4):
    m = CostMatrix(graph4)
    it = m.begin()
    assert it.position == (0, 0)
    for _ in range(3):
        it.advance()
    assert it.position == (0, 3)
    it.advance()
    assert it.position == (1, 0)
    for _ in range(12):
        it.advance()
    assert it == m.end()
    assert it.position == (4, 0)
    it.advance()
    assert it.position == (4, 0)
    with pytest.raises(IndexError):
        it.current()


def test_matrix_iterator_on_empty_matrix():
    m = CostMatrix(Graph(np.zeros((0, 0))))
    assert m.begin() == m.end()
    assert list(m) == []


def test_matrix_iterators_of_different_matrices_differ(graph4):
    assert CostMatrix(graph4).begin() != CostMatrix(graph4).begin()
