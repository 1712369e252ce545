import math

import numpy as np
import pytest

from graph import Graph

INF = math.inf


@pytest.fixture
def square4():
    """4-vertex complete graph, diagonal infinite."""
    return np.array([
        [INF, 10, 15, 20],
        [10, INF, 35, 25],
        [15, 35, INF, 30],
        [20, 25, 30, INF],
    ])


@pytest.fixture
def graph4(square4):
    return Graph(square4)


ATSP_TINY = """NAME: tiny4
TYPE: ATSP
COMMENT: asymmetric 4-city instance

DIMENSION: 4
EDGE_WEIGHT_TYPE: EXPLICIT
EDGE_WEIGHT_FORMAT: FULL_MATRIX
EDGE_WEIGHT_SECTION
9999 10 15 20
12 9999 35 25
15 35 9999 30
20 25 30 9999
EOF
"""


@pytest.fixture
def atsp_file(tmp_path):
    path = tmp_path / "tiny4.atsp"
    path.write_text(ATSP_TINY)
    return str(path)


@pytest.fixture
def atsp_text():
    return ATSP_TINY
