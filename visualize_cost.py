"""
비용 행렬 시각화 — 축소 전/후 히트맵
=====================================
사용법:
  from visualize_cost import plot_reduction

  m = CostMatrix(graph, include=..., exclude=...)
  before = m.to_numpy()
  bound = m.reduce()
  fig = plot_reduction(before, m, bound, title='br17')
  fig.savefig('reduction.png')
"""

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.gridspec as gridspec
from typing import Optional, Sequence

from cost_matrix import CostMatrix


def make_heatmap(ax, data: np.ndarray, title: str,
                 row_labels: Optional[Sequence[int]] = None,
                 column_labels: Optional[Sequence[int]] = None,
                 cmap: str = 'viridis'):
    """비용 히트맵. 무한대 셀은 마스킹 후 × 표시."""
    infinite = ~np.isfinite(data)
    masked = np.ma.masked_array(data, mask=infinite)

    finite = data[~infinite]
    vmin, vmax = (finite.min(), finite.max()) if finite.size else (0.0, 1.0)
    # 값이 전부 같으면 범위 살짝 확장
    if abs(vmax - vmin) < 1e-15:
        vmin, vmax = vmin - 0.5, vmax + 0.5

    im = ax.imshow(masked, aspect='auto', cmap=cmap, vmin=vmin, vmax=vmax,
                   interpolation='nearest')
    ax.set_title(title, fontsize=10, fontweight='bold')
    ax.set_xlabel('Destination (column)', fontsize=8)
    ax.set_ylabel('Origin (row)', fontsize=8)
    ax.tick_params(labelsize=7)

    # 축 눈금 = 원래 정점 번호
    if row_labels is not None:
        ax.set_yticks(range(len(row_labels)))
        ax.set_yticklabels([str(v) for v in row_labels])
    if column_labels is not None:
        ax.set_xticks(range(len(column_labels)))
        ax.set_xticklabels([str(v) for v in column_labels])

    if infinite.any():
        rows, cols = np.where(infinite)
        ax.scatter(cols, rows, marker='x', color='black',
                   s=40, linewidths=1.5, alpha=0.7, zorder=5)

    return im


def plot_reduction(before: np.ndarray, cost_matrix: CostMatrix, bound,
                   title: Optional[str] = None, fig=None):
    """
    축소 전 배열과 축소된 CostMatrix를 나란히 표시.
    before : 축소 전 cost_matrix.to_numpy() 결과 (같은 condensed 모양).
    """
    after = cost_matrix.to_numpy()
    assert before.shape == after.shape, \
        f"before {before.shape} != after {after.shape}"

    if fig is None:
        fig = plt.figure(figsize=(12, 5))
    fig.clf()
    gs = gridspec.GridSpec(1, 2, figure=fig, wspace=0.3)

    rows, cols = cost_matrix.row_vertices, cost_matrix.column_vertices
    panels = [
        (before, 'Condensed cost matrix'),
        (after, f'Reduced (bound += {bound})'),
    ]
    for idx, (data, panel_title) in enumerate(panels):
        ax = fig.add_subplot(gs[0, idx])
        im = make_heatmap(ax, data, panel_title, row_labels=rows, column_labels=cols)
        plt.colorbar(im, ax=ax, fraction=0.046, pad=0.04)

    if title:
        fig.suptitle(f'{title}  ({cost_matrix.num_rows}x{cost_matrix.num_columns})',
                     fontsize=12, fontweight='bold')
    return fig
