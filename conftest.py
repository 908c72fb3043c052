import pytest

pytest.register_assert_rewrite("ndassemble.utils")

collect_ignore_glob = []
try:
    import numpy  # noqa: F401
except ImportError:
    collect_ignore_glob.append("ndassemble/*")
