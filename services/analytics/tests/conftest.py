# services/analytics/tests/conftest.py
"""
Root level fixtures shared by all analytics tests.
"""

import os
import sys
from pathlib import Path

import pytest

# Never reach a live model from tests
os.environ.pop("OPENAI_API_KEY", None)

PROJECT_ROOT = Path(__file__).parent.parent.parent.parent.absolute()


def setup_python_path():
    """Set up Python path to allow imports from both service and shared libs."""
    analytics_src = Path(__file__).parent.parent / "src"
    tests_dir = Path(__file__).parent

    paths_to_add = [str(analytics_src), str(PROJECT_ROOT), str(tests_dir)]
    for path in paths_to_add:
        if path not in sys.path:
            sys.path.insert(0, path)


# Set up paths immediately when module is imported
setup_python_path()

from helpers import HEADER  # noqa: E402


@pytest.fixture
def sample_csv_text():
    """Header plus four users; user id #2 appears twice."""
    return "\n".join(
        [
            HEADER,
            "0,#1,56,Male,Suburban,38037,Sports,5,7,18,2546,Books,584,38,True",
            "1,#2,46,Female,Rural,103986,Technology,15,7,118,320,Electronics,432,40,False",
            "2,#3,24,Female,Urban,60000,Travel,30,2,100,1000,Books,100,5,false",
            "3,#2,33,Male,Urban,50000,Fashion,1,1,50,500,Apparel,10,1,TRUE",
            "",
        ]
    )


@pytest.fixture
def sample_data_path():
    """The sample dataset bundled with the repository."""
    return PROJECT_ROOT / "data" / "sample_users.csv"
