"""Tests for reading replication lag."""

from datetime import timedelta
from pathlib import Path

import pytest

from litefs_monitor.errors import NotReplicatedError
from litefs_monitor.lag import NOT_REPLICATED, lag, lag_path

LAG_FMT = "%+010d\n"


class TestLag:
    """Test the .lag file reader."""

    @pytest.fixture
    def db_path(self, tmp_path: Path) -> Path:
        """Path of a database in a fake LiteFS mount."""
        return tmp_path / "foo.db"

    def _write(self, db_path: Path, content: str) -> None:
        lag_path(db_path).write_text(content)

    def test_lag_file_next_to_database(self, db_path: Path) -> None:
        """The lag file lives in the database's directory."""
        assert lag_path(db_path) == db_path.parent / ".lag"

    def test_missing_file(self, db_path: Path) -> None:
        """A missing lag file is reported."""
        with pytest.raises(FileNotFoundError):
            lag(db_path)

    def test_garbage(self, db_path: Path) -> None:
        """Content that is not an integer is rejected."""
        self._write(db_path, "hi")
        with pytest.raises(ValueError):
            lag(db_path)

    @pytest.mark.parametrize("content", ["1_000", "١٢٣", "0x10", "1.5", "+ 5"])
    def test_only_plain_decimal_digits(self, db_path: Path, content: str) -> None:
        """Underscores, non-ASCII digits and other notations are rejected."""
        self._write(db_path, content)
        with pytest.raises(ValueError):
            lag(db_path)

    def test_negative(self, db_path: Path) -> None:
        """A leading sign is allowed."""
        self._write(db_path, "-0000000005\n")
        assert lag(db_path) == timedelta(milliseconds=-5)

    def test_out_of_range(self, db_path: Path) -> None:
        """Values outside the signed 32-bit range are rejected."""
        self._write(db_path, LAG_FMT % (2**31))
        with pytest.raises(ValueError):
            lag(db_path)

    def test_not_replicated(self, db_path: Path) -> None:
        """The sentinel value means no replication has completed yet."""
        self._write(db_path, LAG_FMT % NOT_REPLICATED)
        with pytest.raises(NotReplicatedError):
            lag(db_path)

    def test_zero(self, db_path: Path) -> None:
        """The primary reports no lag."""
        self._write(db_path, LAG_FMT % 0)
        assert lag(db_path) == timedelta(0)

    def test_milliseconds(self, db_path: Path) -> None:
        """A small value is returned as that many milliseconds."""
        self._write(db_path, LAG_FMT % 123)
        assert lag(db_path) == timedelta(milliseconds=123)

    def test_accepts_str_path(self, db_path: Path) -> None:
        """Plain string paths work too."""
        self._write(db_path, "42")
        assert lag(str(db_path)) == timedelta(milliseconds=42)
