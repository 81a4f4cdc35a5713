from slackr.assistant.directives import (
    describe_directive,
    parse_directives,
    scan_directives,
    strip_directives,
)
from slackr.assistant.types import QueryChannels, QueryMessages, QueryUsers, UnknownDirective


def test_plain_text_has_no_directives() -> None:
    assert parse_directives("Nothing to look up here, just vibes.") == []
    assert parse_directives("") == []


def test_brackets_without_marker_are_ignored() -> None:
    assert parse_directives('[[Message]] From Bob {"type": "query-users"}') == []


def test_single_query_messages_directive() -> None:
    text = 'Let me peek at that channel.\n[[Action]] {"type":"query-messages","in":"#general"}'

    directives = parse_directives(text)

    assert directives == [QueryMessages(channel="#general", raw='{"type":"query-messages","in":"#general"}')]


def test_directives_keep_order_of_appearance() -> None:
    text = "\n".join(
        [
            '[[Action]] {"type": "query-users", "search": "vacation"}',
            "some prose in between",
            '[[Action]] {"type": "query-channels"}',
            '[[Action]]{"type": "query-messages", "in": "random"}',
        ]
    )

    directives = parse_directives(text)

    assert [type(item) for item in directives] == [QueryUsers, QueryChannels, QueryMessages]
    assert directives[0] == QueryUsers(search="vacation", raw='{"type": "query-users", "search": "vacation"}')
    assert directives[1].search is None
    assert directives[2].channel == "random"


def test_malformed_payload_does_not_hide_valid_ones() -> None:
    text = "\n".join(
        [
            '[[Action]] {"type": "query-channels"',
            '[[Action]] {"type": "query-users", "search": "admin"}',
        ]
    )

    scan = scan_directives(text)

    assert [item.kind for item in scan.directives] == ["query-users"]
    assert len(scan.issues) == 1
    assert scan.issues[0].offset == 0
    assert scan.issues[0].reason.startswith("invalid json")


def test_truncated_payload_alone_yields_nothing() -> None:
    scan = scan_directives('I will list channels.\n[[Action]] {"type":"query-channels"')

    assert scan.directives == ()
    assert not scan
    assert len(scan.issues) == 1


def test_payload_must_be_an_object_with_a_type() -> None:
    text = "\n".join(
        [
            "[[Action]] [1, 2, 3]",
            '[[Action]] {"search": "no type"}',
            "[[Action]] no json at all",
            '[[Action]] {"type": "query-messages"}',
            '[[Action]] {"type": "query-channels", "search": 42}',
        ]
    )

    scan = scan_directives(text)

    assert scan.directives == ()
    assert len(scan.issues) == 5


def test_nested_payload_and_trailing_prose_are_decoded() -> None:
    text = '[[Action]] {"type": "query-frobnicate", "options": {"depth": 2}} and then I will answer.'

    directives = parse_directives(text)

    assert len(directives) == 1
    unknown = directives[0]
    assert isinstance(unknown, UnknownDirective)
    assert unknown.kind == "query-frobnicate"
    assert unknown.payload["options"] == {"depth": 2}


def test_marker_inside_decoded_payload_is_not_rescanned() -> None:
    text = '[[Action]] {"type": "query-channels", "search": "[[Action]] {\\"type\\": \\"query-users\\"}"}'

    directives = parse_directives(text)

    assert len(directives) == 1
    assert isinstance(directives[0], QueryChannels)


def test_blank_search_is_treated_as_no_filter() -> None:
    directives = parse_directives('[[Action]] {"type": "query-users", "search": "   "}')

    assert directives[0] == QueryUsers(search=None, raw='{"type": "query-users", "search": "   "}')


def test_strip_directives_keeps_visible_text() -> None:
    text = 'Checking now.\n  [[Action]] {"type": "query-channels"}\nHang tight.'

    assert strip_directives(text) == "Checking now.\nHang tight."


def test_describe_directive_labels() -> None:
    assert describe_directive(QueryMessages(channel="general")) == "Checking messages from #general..."
    assert describe_directive(QueryMessages(channel="#general")) == "Checking messages from #general..."
    assert describe_directive(QueryChannels()) == "Listing available channels..."
    assert describe_directive(QueryChannels(search="eng")) == 'Searching for channels matching "eng"...'
    assert describe_directive(QueryUsers()) == "Listing workspace members..."
    assert describe_directive(QueryUsers(search="admin")) == 'Searching for users matching "admin"...'
    assert describe_directive(UnknownDirective(kind="query-frobnicate")) == "Performing query-frobnicate..."


def test_deeply_nested_payload_is_an_issue_not_a_crash() -> None:
    text = '[[Action]] {"type":"query-channels","x":' + "[" * 100_000 + '\n[[Action]] {"type":"query-users"}'

    scan = scan_directives(text)

    assert [item.kind for item in scan.directives] == ["query-users"]
    assert [issue.reason for issue in scan.issues] == ["payload nested too deeply"]
