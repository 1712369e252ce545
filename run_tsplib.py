"""
TSPLIB 파일 파서 + Little 축소 하한 실행기
===========================================
탐색 노드 하나(include/exclude 엣지 집합)의 condensed 비용 행렬을 만들고
축소하여 하한을 출력한다. 엣지 지정이 없으면 루트 노드.

사용법:
  python run_tsplib.py ALL_tsp/br17.atsp.gz
  python run_tsplib.py ALL_tsp/ftv33.atsp.gz --include 0,5 --exclude 3,7
  python run_tsplib.py ALL_tsp/gr17.tsp.gz --viz
  python run_tsplib.py ALL_tsp/gr17.tsp.gz --save reduction_gr17.png
"""

import gzip
import math
import os
import sys
import time
import argparse
import numpy as np
from typing import List, Optional

from cost_matrix import CostMatrix, Edge, InfeasibleMatrixError
from graph import Graph


# =================================================================
#                      TSPLIB 파서
# =================================================================

def parse_tsplib(filepath: str, verbose: bool = False) -> dict:
    """
    .tsp / .atsp (또는 .gz) 파일을 파싱.
    반환: {
        'name': str,
        'type': str ('TSP', 'ATSP', ...),
        'dimension': int,
        'edge_weight_type': str,
        'D': np.ndarray (N x N distance matrix),
        'coords': np.ndarray or None (N x 2),
    }
    """
    if filepath.endswith('.gz'):
        f = gzip.open(filepath, 'rt', encoding='utf-8', errors='replace')
    else:
        f = open(filepath, 'r', encoding='utf-8', errors='replace')

    with f:
        lines = f.readlines()

    meta = {}
    data_section = None
    data_lines = []

    for line in lines:
        line = line.strip()
        if not line:
            continue
        if line.startswith('EOF'):
            break

        if line in ('NODE_COORD_SECTION', 'EDGE_WEIGHT_SECTION'):
            data_section = line
            continue
        if line.endswith('_SECTION'):
            # DISPLAY_DATA_SECTION 등: 거리 계산에 불필요
            data_section = 'SKIP'
            continue

        if data_section == 'SKIP':
            continue
        if data_section:
            data_lines.append(line)
        elif ':' in line:
            key, val = line.split(':', 1)
            meta[key.strip().upper()] = val.strip()

    name = meta.get('NAME', os.path.basename(filepath))
    problem_type = meta.get('TYPE', 'TSP').upper()
    dimension = int(meta.get('DIMENSION', 0))
    edge_weight_type = meta.get('EDGE_WEIGHT_TYPE', 'EUC_2D').upper()
    edge_weight_format = meta.get('EDGE_WEIGHT_FORMAT', '').upper()

    if verbose:
        print(f"  Name: {name}")
        print(f"  Type: {problem_type}")
        print(f"  Dimension: {dimension}")
        print(f"  Edge weight type: {edge_weight_type}")
        if edge_weight_format:
            print(f"  Edge weight format: {edge_weight_format}")

    coords = None
    if edge_weight_type == 'EXPLICIT':
        D = _parse_explicit_weights(data_lines, dimension, edge_weight_format)
    else:
        coords = _parse_coords(data_lines, dimension)
        D = _compute_distance_matrix(coords, edge_weight_type)

    assert D.shape == (dimension, dimension), \
        f"Distance matrix shape {D.shape} != ({dimension}, {dimension})"

    return {
        'name': name,
        'type': problem_type,
        'dimension': dimension,
        'edge_weight_type': edge_weight_type,
        'D': D,
        'coords': coords,
    }


def _parse_coords(data_lines: list, n: int) -> np.ndarray:
    """NODE_COORD_SECTION → (N, 2) 좌표 (1-indexed 파일 → 0-indexed)."""
    coords = np.zeros((n, 2), dtype=np.float64)
    count = 0
    for line in data_lines:
        parts = line.split()
        if len(parts) >= 3:
            idx = int(parts[0]) - 1
            if 0 <= idx < n:
                coords[idx] = [float(parts[1]), float(parts[2])]
                count += 1
    if count != n:
        raise ValueError(f"Expected {n} coords, got {count}")
    return coords


def _compute_distance_matrix(coords: np.ndarray, edge_weight_type: str) -> np.ndarray:
    """좌표 기반 대칭 거리 행렬. 대각선 0."""
    n = len(coords)
    D = np.zeros((n, n), dtype=np.float64)
    for i in range(n):
        for j in range(i + 1, n):
            D[i, j] = D[j, i] = _distance(coords[i], coords[j], edge_weight_type)
    return D


def _geo_radians(c: float) -> float:
    deg = int(c)
    minute = c - deg
    return math.pi * (deg + 5.0 * minute / 3.0) / 180.0


def _distance(c1, c2, edge_weight_type: str) -> int:
    """TSPLIB 거리 함수 (정수 반환)."""
    dx = c1[0] - c2[0]
    dy = c1[1] - c2[1]

    if edge_weight_type == 'CEIL_2D':
        return math.ceil(math.sqrt(dx * dx + dy * dy))

    if edge_weight_type == 'ATT':
        r = math.sqrt((dx * dx + dy * dy) / 10.0)
        t = round(r)
        return t + 1 if t < r else t

    if edge_weight_type == 'GEO':
        lat1, lon1 = _geo_radians(c1[0]), _geo_radians(c1[1])
        lat2, lon2 = _geo_radians(c2[0]), _geo_radians(c2[1])
        RRR = 6378.388
        q1 = math.cos(lon1 - lon2)
        q2 = math.cos(lat1 - lat2)
        q3 = math.cos(lat1 + lat2)
        return int(RRR * math.acos(0.5 * ((1.0 + q1) * q2 - (1.0 - q1) * q3)) + 1.0)

    if edge_weight_type == 'MAN_2D':
        return round(abs(dx) + abs(dy))

    if edge_weight_type == 'MAX_2D':
        return round(max(abs(dx), abs(dy)))

    # EUC_2D 및 fallback
    return round(math.sqrt(dx * dx + dy * dy))


# 포맷별 (i, j) 셀 방문 순서. symmetric=True면 (j, i)에도 복사
_WEIGHT_LAYOUTS = {
    'FULL_MATRIX':    (lambda n: ((i, j) for i in range(n) for j in range(n)), False),
    'UPPER_ROW':      (lambda n: ((i, j) for i in range(n) for j in range(i + 1, n)), True),
    'LOWER_ROW':      (lambda n: ((i, j) for i in range(1, n) for j in range(i)), True),
    'UPPER_DIAG_ROW': (lambda n: ((i, j) for i in range(n) for j in range(i, n)), True),
    'LOWER_DIAG_ROW': (lambda n: ((i, j) for i in range(n) for j in range(i + 1)), True),
}


def _guess_weight_format(n_values: int, n: int) -> str:
    if n_values == n * n:
        return 'FULL_MATRIX'
    if n_values == n * (n - 1) // 2:
        return 'UPPER_ROW'
    if n_values == n * (n + 1) // 2:
        return 'LOWER_DIAG_ROW'
    raise ValueError(f"Cannot guess EDGE_WEIGHT_FORMAT from {n_values} values for n={n}")


def _parse_explicit_weights(data_lines: list, n: int, fmt: str) -> np.ndarray:
    """EDGE_WEIGHT_SECTION 파싱. ATSP는 FULL_MATRIX 그대로 (비대칭)."""
    values = []
    for line in data_lines:
        try:
            values.extend(float(token) for token in line.split())
        except ValueError:
            break  # 섹션 끝

    if fmt not in _WEIGHT_LAYOUTS:
        fmt = _guess_weight_format(len(values), n)
    layout, symmetric = _WEIGHT_LAYOUTS[fmt]

    cells = list(layout(n))
    if len(values) < len(cells):
        raise ValueError(f"{fmt} needs {len(cells)} values for n={n}, got {len(values)}")

    D = np.zeros((n, n), dtype=np.float64)
    for (i, j), w in zip(cells, values):
        D[i, j] = w
        if symmetric:
            D[j, i] = w
    return D


# =================================================================
#                  알려진 최적해 (TSPLIB)
# =================================================================
KNOWN_OPTIMAL = {
    # ATSP
    'br17': 39, 'ftv33': 1286, 'ftv35': 1473, 'ftv38': 1530,
    'p43': 5620, 'ftv44': 1613, 'ftv47': 1776, 'ry48p': 14422,
    'ft53': 6905, 'ftv55': 1608, 'ftv64': 1839, 'ft70': 38673,
    'ftv70': 1950, 'kro124p': 36230, 'ftv170': 2755,
    # TSP
    'burma14': 3323, 'ulysses16': 6859, 'gr17': 2085, 'gr21': 2707,
    'ulysses22': 7013, 'gr24': 1272, 'fri26': 937, 'bayg29': 1610,
    'bays29': 2020, 'dantzig42': 699, 'swiss42': 1273, 'att48': 10628,
    'gr48': 5046, 'hk48': 11461, 'eil51': 426, 'berlin52': 7542,
}


def get_known_optimal(name: str) -> Optional[int]:
    """이름으로 최적해 검색 (대소문자 무시). 없으면 None."""
    name_lower = name.lower()
    for k, v in KNOWN_OPTIMAL.items():
        if k.lower() == name_lower:
            return v
    return None


def parse_edge(text: str) -> Edge:
    """'u,v' 또는 'u-v' → Edge(u, v). argparse type으로 사용."""
    parts = text.replace('-', ',').split(',')
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"edge must look like 'u,v' (got {text!r})")
    try:
        return Edge(int(parts[0]), int(parts[1]))
    except ValueError:
        raise argparse.ArgumentTypeError(f"edge must look like 'u,v' (got {text!r})")


# =================================================================
#                         메인
# =================================================================
def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='TSPLIB 파일의 탐색 노드 하한을 Little 축소로 계산'
    )
    parser.add_argument('file', type=str, help='.tsp/.atsp 또는 .gz 파일 경로')
    parser.add_argument('--include', type=parse_edge, action='append', default=[],
                        metavar='U,V', help='확정 엣지 (반복 가능, 0-indexed)')
    parser.add_argument('--exclude', type=parse_edge, action='append', default=[],
                        metavar='U,V', help='금지 엣지 (반복 가능, 0-indexed)')
    parser.add_argument('--verbose', action='store_true', help='파싱/축소 과정 출력')

    # 시각화
    parser.add_argument('--viz', action='store_true',
                        help='축소 전/후 비용 행렬 히트맵 표시')
    parser.add_argument('--save', type=str, default=None,
                        help='히트맵을 PNG로 저장할 경로')

    args = parser.parse_args(argv)

    print(f"\n{'='*60}")
    print(f"  Loading: {args.file}")
    print(f"{'='*60}")

    if not os.path.exists(args.file):
        print(f"Error: file not found → {args.file}")
        sys.exit(1)

    tsp = parse_tsplib(args.file, verbose=args.verbose)
    known_opt = get_known_optimal(tsp['name'])
    if known_opt:
        print(f"  Known optimal: {known_opt}")

    # ── 노드 행렬 생성 + 축소 ──
    # 같은 엣지를 여러 번 지정해도 한 번만 (순서 유지)
    include = list(dict.fromkeys(args.include))
    exclude = list(dict.fromkeys(args.exclude))

    t0 = time.time()
    try:
        graph = Graph(tsp['D'])
        cost_matrix = CostMatrix(graph, include=include, exclude=exclude,
                                 verbose=args.verbose)
        before = cost_matrix.to_numpy()
        bound = cost_matrix.reduce()
    except (ValueError, InfeasibleMatrixError) as e:
        print(f"Error: {e}")
        sys.exit(1)
    elapsed = time.time() - t0

    # include 엣지 비용은 이미 투어에 포함된 것으로 계산
    committed = sum(int(graph(e.origin, e.destination)) for e in include)
    lower_bound = committed + bound

    # ── 결과 출력 ──
    print(f"\n{'='*60}")
    print(f"  Result: {tsp['name']}")
    print(f"{'='*60}")
    print(f"  Matrix:      {cost_matrix.num_rows}x{cost_matrix.num_columns} "
          f"(include={len(include)}, exclude={len(exclude)})")
    print(f"  Reduction:   {bound}")
    print(f"  Lower bound: {lower_bound}")
    if known_opt:
        gap = (known_opt - lower_bound) / known_opt * 100
        print(f"  Optimal:     {known_opt}")
        print(f"  Gap:         {gap:.2f}%")
    print(f"  Time:        {elapsed:.4f}s")

    # ── 시각화 ──
    if args.viz or args.save:
        from visualize_cost import plot_reduction
        import matplotlib.pyplot as plt
        fig = plot_reduction(before, cost_matrix, bound, title=tsp['name'])
        if args.save:
            fig.savefig(args.save, dpi=120, bbox_inches='tight')
            print(f"\n  Heatmap saved: {args.save}")
        if args.viz:
            plt.show()
        plt.close(fig)

    return 0


if __name__ == '__main__':
    sys.exit(main())
