"""
Little 축소 알고리즘용 Condensed Cost Matrix
=============================================
Branch-and-bound ATSP 솔버의 각 탐색 노드에서 하한(lower bound)을 계산:
  1) include 엣지로 확정된 행/열을 제외한 "condensed" 비용 행렬 구성
     - include (u, v): u는 더 이상 행으로, v는 더 이상 열로 선택 불가
     - exclude (u, v): 해당 셀만 무한대, 행렬 크기는 그대로
  2) 행 최솟값 → 열 최솟값 순서로 빼서 축소, 뺀 값의 합 = 하한 증가분

원래 정점 번호 ↔ condensed 인덱스 매핑을 유지하므로 호출자는 항상
원래 정점 번호로 셀/행/열에 접근한다.

사용법:
  from cost_matrix import CostMatrix, Edge
  from graph import Graph

  graph = Graph(D)
  m = CostMatrix(graph, include=[Edge(0, 1)], exclude=[Edge(2, 3)])
  bound_increment = m.reduce()
  m[2, 0].value, m.get_row(2), m.get_column(0)
"""

import math
import numpy as np
from functools import total_ordering
from typing import Dict, Iterable, List, NamedTuple, Sequence, Tuple

from matrix import Matrix


class Edge(NamedTuple):
    """정점 순서쌍 (origin → destination)."""
    origin: int
    destination: int


class VertexNotAvailableError(LookupError):
    """include 엣지로 이미 확정된 정점의 행/열을 요청."""


class InfeasibleMatrixError(RuntimeError):
    """축소 중 유한 비용이 하나도 없는 행/열 발견 (불가능한 노드 상태)."""


# =================================================================
#                      비용 셀 (CostMatrixInteger)
# =================================================================
@total_ordering
class CostMatrixInteger:
    """
    비용 셀. 값 대신 "무한대" 상태(태그)를 가질 수 있다.
    무한대 셀은 어떤 유한값보다 크고, 빼기 연산에 영향받지 않는다.
    edge는 셀이 만들어진 원래 엣지 (provenance).
    """

    __slots__ = ('_value', '_infinite', 'edge')

    def __init__(self, value, edge: Edge):
        self.edge = Edge(*edge)
        if math.isnan(value):
            raise ValueError(f"Cost of {self.edge} is NaN")
        self._infinite = math.isinf(value)
        self._value = 0
        if not self._infinite:
            if value != int(value):
                raise ValueError(f"Cost of {self.edge} must be an integer (got {value})")
            self._value = int(value)

    @property
    def is_infinite(self) -> bool:
        return self._infinite

    @property
    def value(self):
        """유한 비용. 무한대 셀은 math.inf (표시용)."""
        return math.inf if self._infinite else self._value

    def set_infinite(self):
        self._infinite = True

    def __isub__(self, other):
        if isinstance(other, CostMatrixInteger):
            if other.is_infinite:
                raise ValueError(f"Cannot subtract an infinite cost from {self.edge}")
            other = other.value
        elif math.isinf(other):
            raise ValueError(f"Cannot subtract an infinite cost from {self.edge}")
        elif other != int(other):
            raise ValueError(f"Cannot subtract non-integer {other} from {self.edge}")
        if not self._infinite:
            self._value -= int(other)
        return self

    def __lt__(self, other):
        if not isinstance(other, CostMatrixInteger):
            return NotImplemented
        if self._infinite:
            return False
        return other._infinite or self._value < other._value

    def __eq__(self, other):
        if isinstance(other, CostMatrixInteger):
            if self._infinite or other._infinite:
                return self._infinite and other._infinite
            return self._value == other._value
        if isinstance(other, (int, float, np.number)):
            return self.value == other
        return NotImplemented

    __hash__ = None

    def __repr__(self):
        shown = 'inf' if self._infinite else self._value
        return f"CostMatrixInteger({shown}, {self.edge})"


def make_vector_mapping(available: Sequence[bool]) -> Dict[int, int]:
    """사용 가능한 정점 → condensed 인덱스 (순서 유지, 빈칸 없음)."""
    mapping = {}
    for vertex, is_available in enumerate(available):
        if is_available:
            mapping[vertex] = len(mapping)
    return mapping


# =================================================================
#                      Condensed Cost Matrix
# =================================================================
class CostMatrix:

    def __init__(self, graph, include: Iterable = (), exclude: Iterable = (),
                 verbose: bool = False):
        """
        Parameters
        ----------
        graph : num_vertices와 graph(i, j) 비용을 제공하는 객체 (graph.Graph).
        include : 확정된 엣지들. Edge 또는 (u, v) 튜플.
        exclude : 금지된 엣지들. 행/열이 이미 없어진 엣지는 무시.
        """
        n = graph.num_vertices
        include = [_as_edge(e, n) for e in include]
        for e in include:
            if e.origin == e.destination:
                raise ValueError(f"Cannot include self-loop {e}")
        exclude = [_as_edge(e, n) for e in exclude]
        self.verbose = verbose

        # --- include 엣지: origin 행, destination 열 제거 ---
        row_available = [True] * n
        column_available = [True] * n
        for e in include:
            row_available[e.origin] = False
            column_available[e.destination] = False

        self.row_mapping = make_vector_mapping(row_available)
        self.column_mapping = make_vector_mapping(column_available)
        self.row_vertices: List[int] = list(self.row_mapping)
        self.column_vertices: List[int] = list(self.column_mapping)

        # --- condensed 행렬 생성 ---
        # self-loop (i, i)는 graph 대각선 값과 무관하게 무한대 (TSPLIB 대각선은 임의값)
        self._cells = Matrix(len(self.row_mapping), len(self.column_mapping))
        for i, row_num in self.row_mapping.items():
            for j, column_num in self.column_mapping.items():
                cost = math.inf if i == j else graph(i, j)
                self._cells[row_num, column_num] = CostMatrixInteger(cost, Edge(i, j))

        # --- exclude 엣지 → 무한대 ---
        for e in exclude:
            if not self.is_row_available(e.origin) or \
                    not self.is_column_available(e.destination):
                continue
            self[e].set_infinite()

        if self.verbose:
            print(f"  CostMatrix: {self.num_rows}x{self.num_columns} "
                  f"(N={n}, include={len(include)}, exclude={len(exclude)})")

    # =================================================================
    #                    Little 축소 (행 → 열)
    # =================================================================
    def reduce(self) -> int:
        """
        모든 행에서 최솟값을 빼고, 그 결과에서 모든 열의 최솟값을 뺀다.
        반환: 뺀 값의 총합 (하한 증가분). 순서가 바뀌면 하한도 달라진다.
        """
        row_total = 0
        for row_num in range(self.num_rows):
            row_total += _reduce_vector(CostRow(self, row_num))

        column_total = 0
        for column_num in range(self.num_columns):
            column_total += _reduce_vector(CostColumn(self, column_num))

        if self.verbose:
            print(f"  Reduced: rows={row_total}, columns={column_total}, "
                  f"total={row_total + column_total}")
        return row_total + column_total

    # =================================================================
    #                    원래 정점 번호로 접근
    # =================================================================
    def __getitem__(self, edge) -> CostMatrixInteger:
        origin, destination = edge
        return self._cells[self.condensed_row(origin),
                           self.condensed_column(destination)]

    def __setitem__(self, edge, cell: CostMatrixInteger):
        # `m[u, v] -= x` 는 같은 셀 객체를 다시 대입
        origin, destination = edge
        self._cells[self.condensed_row(origin),
                    self.condensed_column(destination)] = cell

    def is_row_available(self, row: int) -> bool:
        return row in self.row_mapping

    def is_column_available(self, column: int) -> bool:
        return column in self.column_mapping

    def condensed_row(self, row: int) -> int:
        if not self.is_row_available(row):
            raise VertexNotAvailableError(f"Row {row} is not available")
        return self.row_mapping[row]

    def condensed_column(self, column: int) -> int:
        if not self.is_column_available(column):
            raise VertexNotAvailableError(f"Column {column} is not available")
        return self.column_mapping[column]

    def get_row(self, row: int) -> 'CostRow':
        return CostRow(self, self.condensed_row(row))

    def get_column(self, column: int) -> 'CostColumn':
        return CostColumn(self, self.condensed_column(column))

    # =================================================================
    #                    전체 순회 / 조회
    # =================================================================
    @property
    def storage(self) -> Matrix:
        """condensed 인덱스 기준 저장소."""
        return self._cells

    @property
    def num_rows(self) -> int:
        return self._cells.num_rows

    @property
    def num_columns(self) -> int:
        return self._cells.num_columns

    @property
    def shape(self) -> Tuple[int, int]:
        return self._cells.shape

    def begin(self) -> 'CostMatrixIterator':
        return CostMatrixIterator.begin(self._cells)

    def end(self) -> 'CostMatrixIterator':
        return CostMatrixIterator.end(self._cells)

    def __iter__(self):
        return self.begin()

    def to_numpy(self) -> np.ndarray:
        """condensed 비용 배열 (float64, 무한대 셀 = np.inf)."""
        out = np.empty(self.shape, dtype=np.float64)
        for r in range(self.num_rows):
            for c in range(self.num_columns):
                out[r, c] = self._cells[r, c].value
        return out

    def __repr__(self):
        return (f"CostMatrix({self.num_rows}x{self.num_columns}, "
                f"rows={self.row_vertices}, columns={self.column_vertices})")


def _as_edge(e, n: int) -> Edge:
    edge = Edge(*e)
    if not (0 <= edge.origin < n and 0 <= edge.destination < n):
        raise ValueError(f"{edge} references a vertex outside [0, {n})")
    return edge


def _reduce_vector(vector: 'CostVector') -> int:
    if len(vector) == 0:
        raise InfeasibleMatrixError(f"{vector!r} is empty")
    # min()이 반환하는 셀 자신도 빼기 대상이므로 값을 먼저 복사
    smallest = min(vector)
    if smallest.is_infinite:
        raise InfeasibleMatrixError(f"{vector!r} has no finite cost")
    amount = smallest.value
    if amount:
        for cell in vector:
            cell -= amount
    return amount


# =================================================================
#                    행/열 뷰 (비소유)
# =================================================================
class CostVector:
    """
    CostMatrix의 한 행 또는 한 열에 대한 뷰. 저장소를 소유하지 않으며
    행렬과 condensed 인덱스만 기억한다. 하위 클래스가 k번째 셀의 위치를 정한다.
    """

    def __init__(self, cost_matrix: CostMatrix, index: int):
        self._cost_matrix = cost_matrix
        self._index = index

    def __len__(self) -> int:
        raise NotImplementedError

    def cell_position(self, cell_num: int) -> Tuple[int, int]:
        raise NotImplementedError

    def __getitem__(self, cell_num: int) -> CostMatrixInteger:
        if not 0 <= cell_num < len(self):
            raise IndexError(f"cell {cell_num} out of range for {self!r}")
        return self._cost_matrix.storage[self.cell_position(cell_num)]

    def __setitem__(self, cell_num: int, cell: CostMatrixInteger):
        if not 0 <= cell_num < len(self):
            raise IndexError(f"cell {cell_num} out of range for {self!r}")
        self._cost_matrix.storage[self.cell_position(cell_num)] = cell

    def begin(self) -> 'CostVectorIterator':
        return CostVectorIterator(self, 0)

    def end(self) -> 'CostVectorIterator':
        return CostVectorIterator(self, len(self))

    def __iter__(self):
        return self.begin()

    def same_view(self, other: 'CostVector') -> bool:
        return (type(self) is type(other)
                and self._cost_matrix.storage is other._cost_matrix.storage
                and self._index == other._index)


class CostRow(CostVector):
    """행 고정, 열 변화. k번째 셀 = k번째 사용 가능한 열."""

    def __len__(self) -> int:
        return self._cost_matrix.num_columns

    def cell_position(self, cell_num: int) -> Tuple[int, int]:
        return self._index, cell_num

    @property
    def vertex(self) -> int:
        return self._cost_matrix.row_vertices[self._index]

    @property
    def other_vertices(self) -> List[int]:
        return self._cost_matrix.column_vertices

    def __repr__(self):
        return f"CostRow(vertex={self.vertex}, size={len(self)})"


class CostColumn(CostVector):
    """열 고정, 행 변화. k번째 셀 = k번째 사용 가능한 행."""

    def __len__(self) -> int:
        return self._cost_matrix.num_rows

    def cell_position(self, cell_num: int) -> Tuple[int, int]:
        return cell_num, self._index

    @property
    def vertex(self) -> int:
        return self._cost_matrix.column_vertices[self._index]

    @property
    def other_vertices(self) -> List[int]:
        return self._cost_matrix.row_vertices

    def __repr__(self):
        return f"CostColumn(vertex={self.vertex}, size={len(self)})"


# =================================================================
#                         Iterators
# =================================================================
class CostVectorIterator:
    """행/열 뷰의 forward iterator. 위치 == len(view)이면 end."""

    def __init__(self, vector: CostVector, cell_index: int = 0):
        self._vector = vector
        self._cell_index = cell_index

    @property
    def position(self) -> int:
        return self._cell_index

    @property
    def at_end(self) -> bool:
        return self._cell_index >= len(self._vector)

    def current(self) -> CostMatrixInteger:
        return self._vector[self._cell_index]

    def advance(self) -> 'CostVectorIterator':
        if not self.at_end:
            self._cell_index += 1
        return self

    def __iter__(self):
        return self

    def __next__(self) -> CostMatrixInteger:
        if self.at_end:
            raise StopIteration
        cell = self.current()
        self.advance()
        return cell

    def __eq__(self, other):
        if not isinstance(other, CostVectorIterator):
            return NotImplemented
        return (self._vector.same_view(other._vector)
                and self._cell_index == other._cell_index)

    __hash__ = None


class CostMatrixIterator:
    """
    condensed 행렬 전체를 row-major로 순회.
    열이 0으로 wrap되면 다음 행. end = (row = num_rows, column = 0).
    크기 0인 행렬은 시작부터 end.
    """

    def __init__(self, cells: Matrix, row: int, column: int):
        self._cells = cells
        self._row = row
        self._column = column

    @classmethod
    def begin(cls, cells: Matrix) -> 'CostMatrixIterator':
        if cells.num_rows == 0 or cells.num_columns == 0:
            return cls.end(cells)
        return cls(cells, 0, 0)

    @classmethod
    def end(cls, cells: Matrix) -> 'CostMatrixIterator':
        return cls(cells, cells.num_rows, 0)

    @property
    def position(self) -> Tuple[int, int]:
        return self._row, self._column

    @property
    def at_end(self) -> bool:
        return self._row == self._cells.num_rows and self._column == 0

    def current(self) -> CostMatrixInteger:
        if self.at_end:
            raise IndexError("CostMatrixIterator is at end")
        return self._cells[self._row, self._column]

    def advance(self) -> 'CostMatrixIterator':
        if self.at_end:
            return self
        self._column = (self._column + 1) % self._cells.num_columns
        if self._column == 0:
            self._row += 1
        return self

    def __iter__(self):
        return self

    def __next__(self) -> CostMatrixInteger:
        if self.at_end:
            raise StopIteration
        cell = self.current()
        self.advance()
        return cell

    def __eq__(self, other):
        if not isinstance(other, CostMatrixIterator):
            return NotImplemented
        return self._cells is other._cells and self.position == other.position

    __hash__ = None
