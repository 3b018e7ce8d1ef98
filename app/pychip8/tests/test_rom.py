from returns.result import Failure, Success

from pychip8.rom import Rom


def test_from_bytes():
    result = Rom.from_bytes(bytes([0x00, 0xE0, 0x12, 0x00]))
    assert isinstance(result, Success)
    rom = result.unwrap()
    assert len(rom) == 4
    assert rom.to_bytes() == bytes([0x00, 0xE0, 0x12, 0x00])
    assert rom.name == "untitled"


def test_from_bytes_rejects_bad_input():
    assert isinstance(Rom.from_bytes(b""), Failure)
    assert isinstance(Rom.from_bytes(bytes(3585)), Failure)
    assert isinstance(Rom.from_bytes("not bytes"), Failure)  # type: ignore[arg-type]
    assert isinstance(Rom.from_bytes(bytes(3584)), Success)


def test_from_file(tmp_path):
    path = tmp_path / "maze.ch8"
    path.write_bytes(bytes([0xA2, 0x1E, 0xC2, 0x01]))
    rom = Rom.from_file(path).unwrap()
    assert rom.file == str(path)
    assert rom.name == "maze"
    assert "size=4" in repr(rom)


def test_from_missing_file(tmp_path):
    result = Rom.from_file(tmp_path / "missing.ch8")
    assert isinstance(result, Failure)
    assert "Failed to read file" in result.failure()
