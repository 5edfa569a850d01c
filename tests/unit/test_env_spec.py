from serverrun.env_spec import parse_env


def test_parse_env_pairs():
    assert parse_env("A=1,B=2") == {"A": "1", "B": "2"}


def test_parse_env_empty_string():
    assert parse_env("") == {}


def test_parse_env_drops_empty_segment():
    assert parse_env("A=1,,C=3") == {"A": "1", "C": "3"}


def test_parse_env_trims_keys_and_values():
    assert parse_env(" PORT = 3000 , NODE_ENV= test ") == {"PORT": "3000", "NODE_ENV": "test"}


def test_parse_env_splits_on_first_equals_only():
    assert parse_env("DATABASE_URL=postgres://u:p@h/db?sslmode=require") == {
        "DATABASE_URL": "postgres://u:p@h/db?sslmode=require"
    }


def test_parse_env_drops_segments_without_separator_or_value():
    assert parse_env("FLAG,EMPTY=,=orphan,OK=yes") == {"OK": "yes"}


def test_parse_env_last_duplicate_wins():
    assert parse_env("A=1,A=2") == {"A": "2"}
