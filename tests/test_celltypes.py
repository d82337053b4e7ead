import logging

import pytest

from vscell.celltypes import (
    CellType,
    CellTypeConfig,
    build_expression_table,
    read_expression_csv,
)

SAMPLE = [
    "# comment,line",
    "InitialType, HSC ",
    "InitialNumber,250",
    "CellType,HSC,0.1,0.25,1,true",
    "CellType,MY1,0.5,0.75,10,false",
    "Transition,HSC,MY1,0.4",
    "Transition,HSC,ER1,0.6",
]


@pytest.fixture
def config():
    cfg = CellTypeConfig()
    cfg.parse_lines(SAMPLE)
    return cfg


def test_initial_settings(config):
    assert config.initial_cell_type == "HSC"
    assert config.initial_cell_number == 250


def test_cell_type_fields(config):
    hsc = config.cell_types["HSC"]
    assert hsc.state == "HSC"
    assert hsc.prob_cycle == pytest.approx(0.1)
    assert hsc.prob_differentiate == pytest.approx(0.25)
    assert hsc.duplicate_count == 1
    assert hsc.rna_enabled is True
    assert config.cell_types["MY1"].rna_enabled is False


def test_transitions_kept_in_order(config):
    assert config.cell_types["HSC"].transitions == [("MY1", 0.4), ("ER1", 0.6)]
    assert config.cell_types["MY1"].transitions == []


def test_cell_types_sorted_by_name():
    cfg = CellTypeConfig()
    cfg.parse_lines(["CellType,ZZ,0,0,1,true", "CellType,AA,0,0,1,true"])
    assert list(cfg.cell_types) == ["AA", "ZZ"]


def test_rna_flag_must_be_exactly_true():
    cfg = CellTypeConfig()
    cfg.parse_lines(["CellType,X,0,0,1,True", "CellType,Y,0,0,1,true\r"])
    assert cfg.cell_types["X"].rna_enabled is False
    assert cfg.cell_types["Y"].rna_enabled is False


def test_missing_fields_skip_line(caplog):
    cfg = CellTypeConfig()
    with caplog.at_level(logging.ERROR):
        cfg.parse_lines(["CellType,X,0.1,0.2,3", "CellType,Y,0.1,0.2,3,"])
    assert cfg.cell_types == {}
    assert "missing" in caplog.text


def test_transition_for_unknown_state_is_ignored(caplog):
    cfg = CellTypeConfig()
    with caplog.at_level(logging.ERROR):
        cfg.parse_lines(["Transition,NOPE,A,0.5"])
    assert cfg.cell_types == {}
    assert "NOPE" in caplog.text


def test_transition_missing_probability_is_ignored():
    cfg = CellTypeConfig()
    cfg.parse_lines(["CellType,A,0,0,1,true", "Transition,A,B"])
    assert cfg.cell_types["A"].transitions == []


def test_invalid_number_raises():
    cfg = CellTypeConfig()
    with pytest.raises(ValueError):
        cfg.parse_lines(["CellType,A,abc,0,1,true"])
    with pytest.raises(ValueError):
        cfg.parse_lines(["CellType,A,0,0,1,true", "Transition,A,B,x"])


def test_invalid_initial_number_keeps_default(caplog):
    cfg = CellTypeConfig()
    with caplog.at_level(logging.ERROR):
        cfg.parse_lines(["InitialNumber,many"])
    assert cfg.initial_cell_number == 0
    assert "many" in caplog.text


def test_numbers_parse_leading_prefix():
    cfg = CellTypeConfig()
    cfg.parse_lines(["InitialNumber,12abc", "CellType,A, 0.5x,1e-1,7cells,true"])
    assert cfg.initial_cell_number == 12
    assert cfg.cell_types["A"].prob_cycle == pytest.approx(0.5)
    assert cfg.cell_types["A"].prob_differentiate == pytest.approx(1e-1)
    assert cfg.cell_types["A"].duplicate_count == 7


def test_unknown_command_and_short_lines_ignored():
    cfg = CellTypeConfig()
    cfg.parse_lines(["", "Bogus,A,1", "OnlyOne"])
    assert cfg == CellTypeConfig()


def test_lookups(config):
    assert config.rna_enabled_for_type("HSC") is True
    assert config.rna_enabled_for_type("MISSING") is False
    assert config.duplicate_count_for_type("MY1") == 10
    assert config.duplicate_count_for_type("MISSING") == 0


def test_read_csv_matches_parse_lines(tmp_path, config):
    path = tmp_path / "cell_types.csv"
    path.write_text("\n".join(SAMPLE) + "\n", encoding="utf-8")
    cfg = CellTypeConfig()
    cfg.read_csv(path)
    assert cfg == config


def test_read_csv_missing_file(tmp_path):
    with pytest.raises(OSError):
        CellTypeConfig().read_csv(tmp_path / "absent.csv")


def test_cell_type_defaults():
    cell = CellType(state="A")
    assert cell.duplicate_count == 0
    assert cell.rna_enabled is False
    assert cell.transitions == []


def test_read_expression_csv_sorted(tmp_path):
    path = tmp_path / "expr.csv"
    path.write_text("Zfp,0.5\nActb,2.25\nbad\nGapdh,1\n", encoding="utf-8")
    table = read_expression_csv(path)
    assert list(table) == ["Actb", "Gapdh", "Zfp"]
    assert table["Actb"] == pytest.approx(2.25)
    assert table["Zfp"] == pytest.approx(0.5)


def test_read_expression_csv_later_rows_win(tmp_path):
    path = tmp_path / "expr.csv"
    path.write_text("A,1\nA,3\n", encoding="utf-8")
    assert read_expression_csv(path) == {"A": 3.0}


def test_read_expression_csv_bad_value(tmp_path):
    path = tmp_path / "expr.csv"
    path.write_text("A,oops\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_expression_csv(path)


def test_build_expression_table_skips_missing_and_empty(tmp_path, caplog):
    (tmp_path / "s.csv").write_text("Mki67,0.5\n", encoding="utf-8")
    (tmp_path / "empty.csv").write_text("", encoding="utf-8")
    files = {"S": "s.csv", "G2M": "absent.csv", "HSC": "empty.csv"}
    with caplog.at_level(logging.WARNING):
        table = build_expression_table(tmp_path, files)
    assert table == {"S": {"Mki67": 0.5}}
    assert "G2M" in caplog.text
    assert "HSC" in caplog.text


def test_build_expression_table_default_files(tmp_path):
    (tmp_path / "bm6_stem_expression.csv").write_text("Kit,1.5\n", encoding="utf-8")
    (tmp_path / "bm6_g2m_expression.csv").write_text("Top2a,0.25\n", encoding="utf-8")
    table = build_expression_table(tmp_path)
    assert table == {"G2M": {"Top2a": 0.25}, "HSC": {"Kit": 1.5}}
    assert list(table) == ["G2M", "HSC"]