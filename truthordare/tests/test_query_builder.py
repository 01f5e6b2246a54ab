"""
查询构造测试：纯函数，不依赖数据库。
"""
from __future__ import annotations

import pytest

from truthordare.domain.models import MatchMode, QueryCriteria
from truthordare.domain.query_builder import (
    And,
    Eq,
    Or,
    TagsAll,
    TagsAny,
    build_question_query,
    normalize_tags,
    tag_predicate,
)


def test_no_filters_has_no_where():
    q = build_question_query(QueryCriteria())
    assert "WHERE" not in q.sql
    assert q.params == []
    assert "GROUP BY q.id" in q.sql
    assert "GROUP_CONCAT(DISTINCT t.name)" in q.sql


def test_language_and_type_params_follow_placeholder_order():
    q = build_question_query(QueryCriteria.of("en", "dare"))
    assert q.params == ["en", "dare"]
    assert q.sql.index("q.language = ?") < q.sql.index("q.type = ?")


def test_empty_strings_are_no_filter():
    assert build_question_query(QueryCriteria.of("", "", [])) == build_question_query(QueryCriteria())


def test_any_mode_uses_membership_subquery():
    q = build_question_query(QueryCriteria.of("en", None, ["18+", "alcohol"], match_all_tags=False))
    assert q.params == ["en", "18+", "alcohol"]
    assert "mt.name IN (?,?)" in q.sql
    assert "HAVING" not in q.sql


def test_all_mode_requires_full_count():
    q = build_question_query(QueryCriteria.of(None, None, ["18+", "alcohol"], match_all_tags=True))
    assert q.params == ["18+", "alcohol", 2]
    assert "GROUP BY mqt.question_id HAVING COUNT(DISTINCT mt.name) = ?" in q.sql


def test_all_mode_with_no_tags_equals_no_tag_filter():
    all_empty = build_question_query(QueryCriteria.of("en", None, [], match_all_tags=True))
    any_empty = build_question_query(QueryCriteria.of("en", None, [], match_all_tags=False))
    assert all_empty == any_empty
    assert "question_tags mqt" not in all_empty.sql


def test_duplicate_and_blank_tags_are_collapsed():
    q = build_question_query(QueryCriteria.of(None, None, ["a", " a ", "", "b", "a"], match_all_tags=True))
    assert q.params == ["a", "b", 2]


def test_user_values_never_reach_sql_text():
    evil = "x'); DROP TABLE questions;--"
    q = build_question_query(QueryCriteria.of(evil, evil, [evil], match_all_tags=True))
    assert evil not in q.sql
    assert q.params.count(evil) == 3


@pytest.mark.parametrize("language,qtype,tags,match_all", [
    (None, None, [], False),
    ("en", None, [], False),
    (None, "truth", ["a"], False),
    ("de", "dare", ["a", "b", "c"], False),
    ("de", "dare", ["a", "b", "c"], True),
    (None, None, ["a"], True),
])
def test_placeholder_count_matches_params(language, qtype, tags, match_all):
    q = build_question_query(QueryCriteria.of(language, qtype, tags, match_all))
    assert q.sql.count("?") == len(q.params)


def test_normalize_tags_keeps_first_occurrence_order():
    assert normalize_tags(["b", "a", "b", None, "  "]) == ("b", "a")
    assert normalize_tags(None) == ()


def test_tag_predicate_by_mode():
    assert tag_predicate([], MatchMode.ALL) is None
    assert tag_predicate(["x"], MatchMode.ANY) == TagsAny(("x",))
    assert tag_predicate(["x"], MatchMode.ALL) == TagsAll(("x",))


def test_predicates_compose():
    sql, params = Or((Eq("language", "en"), And((Eq("type", "truth"), TagsAny(("a",)))))).render()
    assert sql.startswith("(q.language = ?) OR (")
    assert params == ["en", "truth", "a"]
    assert And().render() == ("1=1", [])
    assert Or().render() == ("1=0", [])


def test_invalid_predicates_raise():
    with pytest.raises(ValueError):
        Eq("language; DROP TABLE tags", "en").render()
    with pytest.raises(ValueError):
        TagsAny(()).render()
    with pytest.raises(ValueError):
        TagsAll(()).render()
