from vista_guard.policy.dialects import MYSQL, POSTGRESQL, SQLITE
from vista_guard.policy.lexer import (
    COMMENT,
    QUOTED_IDENT,
    STRING,
    WORD,
    contains_forbidden_keyword,
    find_forbidden_keyword,
    significant_tokens,
    tokenize,
)


def kinds(sql, policy=POSTGRESQL):
    return [(t.kind, t.value) for t in significant_tokens(tokenize(sql, policy))]


def test_tokens_keep_offsets():
    sql = "select a from t"
    for tok in tokenize(sql):
        assert sql[tok.start:tok.end] == tok.value


def test_words_and_literals():
    toks = kinds("select 'x''y', \"Col\" from t -- tail")
    assert toks[0] == (WORD, "select")
    assert (STRING, "'x''y'") in toks
    assert (QUOTED_IDENT, '"Col"') in toks
    assert all(kind != COMMENT for kind, _ in toks)


def test_detects_standalone_verbs():
    assert find_forbidden_keyword("DROP TABLE x") == "drop"
    assert find_forbidden_keyword("select 1; delete from y") == "delete"
    assert contains_forbidden_keyword("Select * From t For Update")


def test_ignores_verbs_inside_identifiers():
    assert not contains_forbidden_keyword("select insertion_date, updated_at, created_by from t")


def test_ignores_verbs_in_strings_comments_and_quoted_identifiers():
    assert not contains_forbidden_keyword("select 'drop table x' as note from t")
    assert not contains_forbidden_keyword("select a from t -- delete everything")
    assert not contains_forbidden_keyword("select a /* update t set a = 1 */ from t")
    assert not contains_forbidden_keyword('select "delete" from t')


def test_postgres_dollar_quotes_and_nested_comments():
    assert not contains_forbidden_keyword("select $$ drop table x $$ from t")
    assert not contains_forbidden_keyword("select $body$ truncate t $body$ from t")
    assert not contains_forbidden_keyword("select 1 /* outer /* inner */ still comment drop */ from t")


def test_postgres_escape_string_cannot_hide_a_verb():
    # E'\'' ends after the escaped quote; the delete that follows is code.
    assert contains_forbidden_keyword("select E'\\'' , 1 delete from t")


def test_standard_string_treats_backslash_as_text():
    assert (STRING, "'a\\'") in kinds("select 'a\\' from t", POSTGRESQL)
    assert find_forbidden_keyword("select 'a\\' , 1 delete from t", POSTGRESQL) == "delete"


def test_mysql_backslash_escape_keeps_string_open():
    assert not contains_forbidden_keyword("select 'it\\'s; drop' from t", MYSQL)


def test_mysql_hash_comment():
    assert not contains_forbidden_keyword("select a from t # drop table t", MYSQL)
    assert contains_forbidden_keyword("select a from t # comment\n union select 1 into outfile 'x'", MYSQL)


def test_mysql_executable_comment_is_code():
    assert find_forbidden_keyword("select 1 /*!50000 into outfile '/tmp/x' */", MYSQL) == "into"
    assert not contains_forbidden_keyword("select 1 /* into outfile '/tmp/x' */", MYSQL)


def test_denied_functions_per_dialect():
    assert find_forbidden_keyword("select pg_sleep(10)", POSTGRESQL) == "pg_sleep"
    assert find_forbidden_keyword("select sleep(10)", MYSQL) == "sleep"
    assert find_forbidden_keyword("select load_extension('x')", SQLITE) == "load_extension"
    assert not contains_forbidden_keyword("select sleep from naps", POSTGRESQL)


def test_unterminated_string_runs_to_end():
    toks = tokenize("select 'open drop")
    assert toks[-1].kind == STRING
    assert not contains_forbidden_keyword("select 'open drop")


def test_mysql_double_dash_needs_whitespace():
    # 1--1 is 1 - -1 in MySQL; what follows is still code.
    assert find_forbidden_keyword("select 1--1 into outfile '/tmp/x'", MYSQL) == "into"
    assert not contains_forbidden_keyword("select 1 -- into outfile\n", MYSQL)
    assert not contains_forbidden_keyword("select 1 --\tinto outfile", MYSQL)
    assert not contains_forbidden_keyword("select 1 --", MYSQL)
    # PostgreSQL and SQLite open a comment on any --.
    assert not contains_forbidden_keyword("select 1--1 into x", POSTGRESQL)
    assert not contains_forbidden_keyword("select 1--1 into x", SQLITE)


def test_mariadb_executable_comment_is_code():
    assert find_forbidden_keyword("select 1 /*M! into outfile '/tmp/x' */", MYSQL) == "into"
    assert find_forbidden_keyword("select 1 /*M!100100 into outfile '/tmp/x' */", MYSQL) == "into"
    assert not contains_forbidden_keyword("select 1 /*M into outfile */", MYSQL)
