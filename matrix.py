"""
범용 2차원 저장소 (Matrix)
==========================
행/열 개수와 (row, column) 접근만 제공하는 직사각형 저장소.
도메인 지식 없음 — 셀 타입은 무엇이든 가능 (numpy object 배열).
"""

import numpy as np
from typing import Any, Tuple


class Matrix:

    def __init__(self, num_rows: int = 0, num_columns: int = 0):
        self._data = np.empty((0, 0), dtype=object)
        self.set_size(num_rows, num_columns)

    def set_size(self, num_rows: int, num_columns: int):
        """크기 변경. 기존 셀은 버려지고 전부 None으로 초기화."""
        if num_rows < 0 or num_columns < 0:
            raise ValueError(
                f"Matrix size must be non-negative (got {num_rows}x{num_columns})"
            )
        self._data = np.empty((num_rows, num_columns), dtype=object)

    @property
    def num_rows(self) -> int:
        return self._data.shape[0]

    @property
    def num_columns(self) -> int:
        return self._data.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self._data.shape

    def __getitem__(self, pos: Tuple[int, int]) -> Any:
        row, column = pos
        self._check_bounds(row, column)
        return self._data[row, column]

    def __setitem__(self, pos: Tuple[int, int], value: Any):
        row, column = pos
        self._check_bounds(row, column)
        self._data[row, column] = value

    def _check_bounds(self, row: int, column: int):
        # numpy의 음수 인덱스 허용을 막기 위해 직접 검사
        if not (0 <= row < self.num_rows and 0 <= column < self.num_columns):
            raise IndexError(
                f"({row}, {column}) out of range for "
                f"{self.num_rows}x{self.num_columns} matrix"
            )
