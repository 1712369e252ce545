"""
거리 행렬 그래프 (Graph)
========================
완전 방향 그래프. 서로 다른 정점 순서쌍마다 유한, 비음수 비용.
대각선(self-loop)은 무시 — CostMatrix가 항상 무한대로 만든다.
"""

import numpy as np


class Graph:

    def __init__(self, D):
        """
        Parameters
        ----------
        D : (N x N) 거리 행렬. D[i, j] = i → j 비용 (비대칭 허용).
        """
        D_np = np.array(D, dtype=np.float64)
        if D_np.ndim != 2 or D_np.shape[0] != D_np.shape[1]:
            raise ValueError(f"D must be square (got shape {D_np.shape})")

        off_diag = ~np.eye(D_np.shape[0], dtype=bool)
        if not np.isfinite(D_np[off_diag]).all():
            raise ValueError("Off-diagonal costs must be finite")
        if (D_np[off_diag] < 0).any():
            raise ValueError("Off-diagonal costs must be non-negative")

        self.D = D_np

    @classmethod
    def from_tsplib(cls, filepath: str, verbose: bool = False) -> 'Graph':
        """TSPLIB .tsp/.atsp (.gz 포함) 파일에서 그래프 생성."""
        from run_tsplib import parse_tsplib
        return cls(parse_tsplib(filepath, verbose=verbose)['D'])

    @property
    def num_vertices(self) -> int:
        return self.D.shape[0]

    def __call__(self, i: int, j: int) -> float:
        return float(self.D[i, j])

    def __repr__(self):
        return f"Graph(N={self.num_vertices})"
