from __future__ import annotations

import json
from pathlib import Path
from uuid import UUID

import pytest

from wavexpr.api import compile_expr
from wavexpr.core.config import EngineConfig
from wavexpr.engine.compiler import ExpressionMode
from wavexpr.errors import LibraryError
from wavexpr.library import FormulaLibrary, default_library_dir
from wavexpr.library.manager import MULTIS_FILE, SINGLES_FILE

pytestmark = [pytest.mark.unit, pytest.mark.library]


@pytest.fixture
def library_dir(tmp_path: Path) -> Path:
    d = tmp_path / "bundled"
    d.mkdir()
    (d / SINGLES_FILE).write_text(
        "[x][Basic]\n[sin(2*pi*x)][Sine]\n[-x][Saw Down]\n[x][Noise]\n[rand][White]\n",
        encoding="utf-8",
    )
    (d / MULTIS_FILE).write_text("[x][Morphs]\n[sin(2*pi*x)*z][Fade]\n", encoding="utf-8")
    return d


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "user" / "formulas.json"


@pytest.fixture
def lib(library_dir, state_path) -> FormulaLibrary:
    return FormulaLibrary(library_dir=library_dir, state_path=state_path)


def test_loads_bundled_formulas(lib):
    assert [e.name for e in lib.single_frame_formulas] == ["Sine", "Saw Down", "White"]
    assert [e.name for e in lib.multi_frame_formulas] == ["Fade"]
    assert [(c.name, c.is_multi_frame) for c in lib.categories] == [
        ("Basic", False),
        ("Morphs", True),
        ("Noise", False),
    ]


def test_missing_bundled_files_give_empty_lists(tmp_path):
    lib = FormulaLibrary(library_dir=tmp_path / "nowhere", state_path=None)
    assert lib.single_frame_formulas == [] and lib.multi_frame_formulas == []
    assert lib.categories == []


def test_add_user_formula_persists(lib, library_dir, state_path):
    entry = lib.add_user_formula("x^3", "Cubic", "Mine", is_multi_frame=False)
    assert entry.is_user_created
    assert state_path.exists()

    raw = json.loads(state_path.read_text(encoding="utf-8"))
    assert raw["user_formulas"][0]["expression"] == "x^3"

    reloaded = FormulaLibrary(library_dir=library_dir, state_path=state_path)
    assert [e.id for e in reloaded.user_formulas] == [entry.id]
    assert "Mine" in [c.name for c in reloaded.categories]


@pytest.mark.parametrize(
    "expression,is_multi,message",
    [
        ("x*y", False, "Single-frame formulas cannot use y or z"),
        ("x", True, "Multi-frame formulas must use y or z"),
        ("x +", False, "Invalid formula: Unexpected end of expression"),
    ],
)
def test_add_user_formula_validates(lib, expression, is_multi, message):
    with pytest.raises(LibraryError) as ei:
        lib.add_user_formula(expression, "Bad", "Mine", is_multi_frame=is_multi)
    assert str(ei.value) == message
    assert lib.user_formulas == []


def test_add_user_formula_rejects_blank_name(lib):
    with pytest.raises(LibraryError):
        lib.add_user_formula("x", "   ", "Mine", is_multi_frame=False)


def test_update_and_delete(lib):
    entry = lib.add_user_formula("x", "Ramp", "Mine", is_multi_frame=False)
    updated = lib.update_user_formula(entry.id, "-x", "Ramp Down", "Mine 2")
    assert updated.id == entry.id
    assert (updated.expression, updated.name, updated.category) == ("-x", "Ramp Down", "Mine 2")
    assert updated.date_modified >= entry.date_modified
    assert updated.date_created == entry.date_created

    lib.delete_user_formula(entry.id)
    assert lib.user_formulas == []
    with pytest.raises(LibraryError):
        lib.delete_user_formula(entry.id)
    with pytest.raises(LibraryError):
        lib.update_user_formula(entry.id, "x", "n", "c")


def test_favorites_survive_reload(lib, library_dir, state_path):
    sine = lib.single_frame_formulas[0]
    assert lib.toggle_favorite(sine.id) is True
    mine = lib.add_user_formula("y*x", "Mine", "Mine", is_multi_frame=True)
    lib.toggle_favorite(mine.id)

    reloaded = FormulaLibrary(library_dir=library_dir, state_path=state_path)
    assert [e.name for e in reloaded.favorites(is_multi_frame=False)] == ["Sine"]
    assert [e.name for e in reloaded.favorites(is_multi_frame=True)] == ["Mine"]

    assert reloaded.toggle_favorite(sine.id) is False
    assert reloaded.favorites(is_multi_frame=False) == []

    with pytest.raises(LibraryError):
        reloaded.toggle_favorite(UUID(int=0))


@pytest.fixture
def failing_disk(monkeypatch):
    """Make the atomic rename of the state file fail from now on."""

    def refuse(src, dst):
        raise OSError(28, "No space left on device")

    def arm() -> None:
        monkeypatch.setattr("wavexpr.library.manager.os.replace", refuse)

    return arm


def test_failed_save_leaves_no_trace_of_add(lib, state_path, failing_disk):
    kept = lib.add_user_formula("x", "Ramp", "Mine", is_multi_frame=False)
    before = state_path.read_text(encoding="utf-8")
    failing_disk()

    with pytest.raises(LibraryError, match="Cannot write"):
        lib.add_user_formula("x^3", "Cubic", "Mine", is_multi_frame=False)
    assert lib.user_formulas == [kept]
    assert state_path.read_text(encoding="utf-8") == before
    assert [p.name for p in state_path.parent.iterdir()] == [state_path.name]


def test_failed_save_restores_updated_and_deleted_entries(lib, failing_disk):
    first = lib.add_user_formula("x", "Ramp", "Mine", is_multi_frame=False)
    second = lib.add_user_formula("-x", "Ramp Down", "Mine", is_multi_frame=False)
    third = lib.add_user_formula("x*x", "Square", "Mine", is_multi_frame=False)
    failing_disk()

    with pytest.raises(LibraryError):
        lib.update_user_formula(second.id, "x^3", "Cubic", "Other")
    assert lib.user_formulas == [first, second, third]
    assert lib.get(second.id).expression == "-x"

    with pytest.raises(LibraryError):
        lib.delete_user_formula(second.id)
    assert lib.user_formulas == [first, second, third]


def test_failed_save_reverts_favorite_toggle(lib, failing_disk):
    sine = lib.single_frame_formulas[0]
    mine = lib.add_user_formula("x", "Ramp", "Mine", is_multi_frame=False)
    lib.toggle_favorite(mine.id)
    failing_disk()

    with pytest.raises(LibraryError):
        lib.toggle_favorite(sine.id)
    with pytest.raises(LibraryError):
        lib.toggle_favorite(mine.id)
    assert sine.is_favorite is False
    assert mine.is_favorite is True
    assert [e.name for e in lib.favorites(is_multi_frame=False)] == ["Ramp"]


def test_all_formulas_filters_user_formulas_by_mode(lib):
    lib.add_user_formula("x*2", "Double", "Mine", is_multi_frame=False)
    lib.add_user_formula("x*z", "Tilt", "Mine", is_multi_frame=True)

    singles = lib.all_formulas(False)
    multis = lib.all_formulas(True)
    assert [e.name for e in singles] == ["Sine", "Saw Down", "White", "Double"]
    assert [e.name for e in multis] == ["Fade", "Tilt"]
    for entry in singles:
        assert compile_expr(entry.expression).mode is ExpressionMode.SINGLE_FRAME


def test_uncompilable_user_formulas_are_excluded(lib):
    entry = lib.add_user_formula("x*2", "Double", "Mine", is_multi_frame=False)
    lib.update_user_formula(entry.id, "x +", "Broken", "Mine")
    assert "Broken" not in [e.name for e in lib.all_formulas(False)]
    assert "Broken" not in [e.name for e in lib.all_formulas(True)]


def test_queries(lib):
    lib.add_user_formula("abs(x)", "Fold", "Basic", is_multi_frame=False)
    assert [e.name for e in lib.formulas_in("Basic", is_multi_frame=False)] == ["Sine", "Saw Down", "Fold"]
    assert [e.name for e in lib.search("SAW", is_multi_frame=False)] == ["Saw Down"]
    assert [e.name for e in lib.search("abs", is_multi_frame=False)] == ["Fold"]
    assert [e.name for e in lib.search("noise", is_multi_frame=False)] == ["White"]
    assert lib.search("saw", is_multi_frame=True) == []
    assert lib.get(lib.multi_frame_formulas[0].id).name == "Fade"


def test_corrupt_state_file_raises(library_dir, state_path):
    state_path.parent.mkdir(parents=True)
    state_path.write_text('{"user_formulas": [{"name": 1}]}', encoding="utf-8")
    with pytest.raises(LibraryError):
        FormulaLibrary(library_dir=library_dir, state_path=state_path)


def test_in_memory_library_does_not_write(library_dir, tmp_path):
    lib = FormulaLibrary(library_dir=library_dir, state_path=None)
    lib.add_user_formula("x", "Ramp", "Mine", is_multi_frame=False)
    assert list(tmp_path.rglob("*.json")) == []


def test_paths_from_config(library_dir, state_path):
    cfg = EngineConfig(library_path=str(library_dir), user_formulas_path=str(state_path))
    lib = FormulaLibrary(config=cfg)
    assert lib.library_dir == library_dir
    assert lib.state_path == state_path
    assert len(lib.single_frame_formulas) == 3


def test_packaged_formulas_compile_to_their_mode():
    lib = FormulaLibrary(library_dir=default_library_dir(), state_path=None)
    assert lib.single_frame_formulas and lib.multi_frame_formulas
    for entry in lib.single_frame_formulas:
        assert compile_expr(entry.expression).mode is ExpressionMode.SINGLE_FRAME, entry.name
    for entry in lib.multi_frame_formulas:
        assert compile_expr(entry.expression).mode is ExpressionMode.MULTI_FRAME, entry.name
