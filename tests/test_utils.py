from pathlib import Path

from knfunc.utils import split_names, write_termination_message


def test_split_names() -> None:
    assert split_names("A, ,B") == ["A", "B"]
    assert split_names(" A ,B,, C ") == ["A", "B", "C"]
    assert split_names("") == []
    assert split_names(" , ") == []
    assert split_names("A;B", separator=";") == ["A", "B"]


def test_write_termination_message(tmp_path: Path) -> None:
    path = tmp_path / "term-log"

    write_termination_message("http://foo.bar", str(path))

    assert path.read_bytes() == b'{"url":"http://foo.bar"}'


def test_write_termination_message_overwrites(tmp_path: Path) -> None:
    path = tmp_path / "term-log"
    path.write_text("previous content that is longer")

    write_termination_message("http://x", str(path))

    assert path.read_text() == '{"url":"http://x"}'
