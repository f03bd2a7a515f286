import pytest

from romshelf.config.consoles import ConsolesConfig, ConsolesError


@pytest.fixture(scope="module")
def bundled():
    return ConsolesConfig.load()


@pytest.mark.unit
def test_bundled_catalogue_loads(bundled):
    assert len(bundled) >= 10
    names = [console.name for console in bundled]
    assert len(names) == len(set(names))


@pytest.mark.unit
@pytest.mark.parametrize("folder,name,screenscraper_id", [
    ("SFC", "SNES", 4),
    ("snes", "SNES", 4),
    ("gb", "Game Boy", 9),
    ("FC", "NES", 3),
    ("GBA", "Game Boy Advance", 12),
])
def test_find_console_by_folder(bundled, folder, name, screenscraper_id):
    console = bundled.find_console(folder)
    assert console is not None
    assert console.name == name
    assert console.screenscraper_id == screenscraper_id


@pytest.mark.unit
def test_unknown_folder(bundled):
    assert bundled.find_console("Imgs") is None
    assert bundled.get("Atari Jaguar") is None


@pytest.mark.unit
def test_load_custom_catalogue(tmp_path):
    path = tmp_path / "consoles.yaml"
    path.write_text(
        "consoles:\n"
        "  - name: Vectrex\n"
        "    patterns: [VECTREX, VEC]\n"
        "    thegamesdb_id: 4939\n"
        "  - name: Lynx\n"
    )

    consoles = ConsolesConfig.load(path)

    vectrex = consoles.find_console("vec")
    assert vectrex.thegamesdb_id == 4939
    assert vectrex.screenscraper_id is None
    # Name doubles as the only pattern when none are given
    assert consoles.find_console("LYNX").name == "Lynx"
    assert consoles.all_patterns() == ["VECTREX", "VEC", "Lynx"]


@pytest.mark.unit
@pytest.mark.parametrize("content", [
    "consoles: nope\n",
    "- name: NES\n",
    "consoles:\n  - patterns: [NES]\n",
    "consoles:\n  - name: NES\n    patterns: NES\n",
    "consoles: [unclosed\n",
])
def test_invalid_catalogue(tmp_path, content):
    path = tmp_path / "consoles.yaml"
    path.write_text(content)

    with pytest.raises(ConsolesError):
        ConsolesConfig.load(path)


@pytest.mark.unit
def test_missing_catalogue(tmp_path):
    with pytest.raises(ConsolesError):
        ConsolesConfig.load(tmp_path / "nope.yaml")
