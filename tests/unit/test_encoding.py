"""Query serialization and realtime topic encoding."""

from urllib.parse import parse_qsl, unquote

from kontext.infrastructure.backend.encoding import (
    build_url,
    list_params,
    quote_segment,
    realtime_topic,
    serialize_query,
)


def test_filter_grammar_survives_decoding() -> None:
    """Every filter operator decodes back to the exact expression."""
    expr = '(Title != "a b" && Order > 2) || Slug ~ "x%y" || Tag = \'z\''
    query = serialize_query({"filter": expr})
    assert dict(parse_qsl(query)) == {"filter": expr}


def test_reserved_query_characters_are_encoded() -> None:
    """&, = and + inside a value cannot split or corrupt the query string."""
    query = serialize_query({"filter": 'a = "1&b=2+3"'})
    assert "&b=" not in query
    assert unquote(query.split("=", 1)[1]) == 'a = "1&b=2+3"'


def test_grammar_characters_stay_literal_where_safe() -> None:
    query = serialize_query({"sort": "-created,Order", "expand": "author(name)"})
    assert query == "sort=-created,Order&expand=author(name)"


def test_none_dropped_sequences_repeated_bools_lowercase() -> None:
    query = serialize_query([("a", None), ("tag", ["x", "y"]), ("flag", True), ("n", 3)])
    assert query == "tag=x&tag=y&flag=true&n=3"


def test_build_url_joins_base_path_and_query() -> None:
    assert build_url("http://b.test/", "/api/health") == "http://b.test/api/health"
    assert build_url("http://b.test", "api/x", {"page": 2}) == "http://b.test/api/x?page=2"


def test_quote_segment_encodes_slashes() -> None:
    assert quote_segment("a/b c") == "a%2Fb%20c"


def test_list_params_uses_backend_names() -> None:
    params = list_params(2, 50, sort="Order", filter="", skip_total=True)
    assert params == {"page": 2, "perPage": 50, "sort": "Order", "skipTotal": 1}


def test_realtime_topic_without_and_with_filter() -> None:
    assert realtime_topic("posts", "*") == "posts/*"
    topic = realtime_topic("posts", "*", 'status = "live"')
    prefix, _, options = topic.partition("?options=")
    assert prefix == "posts/*"
    assert unquote(options) == '{"query":{"filter":"status = \\"live\\""}}'
