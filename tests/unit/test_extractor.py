"""
Unit tests for PollingExtractor against an in-memory tree that keeps
rendering between ticks.
"""

from unittest.mock import MagicMock

import pytest
from forkline.core.config import EngineConfig
from forkline.core.tree import TreeNode
from forkline.layers.action.extractor import ExtractionRecord, PollingExtractor
from forkline.layers.action.poller import Poller, TaskState
from forkline.layers.sense.dom_snapshot import BrowserTree


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


class LiveTree:
    """Tree provider whose content changes on every read."""

    def __init__(self, root, render_steps=None):
        self.root = root
        self.reads = 0
        self.render_steps = render_steps or {}

    def __call__(self):
        step = self.render_steps.get(self.reads)
        if step:
            step(self.root)
        self.reads += 1
        return self.root


def build_tree(texts):
    # root -> container -> one child per text
    items = [
        TreeNode(text=t, markup=f'<a href="/u/status/{100 + i}/">x</a>' if t else "")
        for i, t in enumerate(texts)
    ]
    return TreeNode(children=[TreeNode(text="header"), TreeNode(children=items)])


def make_extractor(provider, **config):
    clock = FakeClock()
    poller = Poller(clock=clock, sleep=clock.sleep)
    return PollingExtractor(provider, config=EngineConfig(**config), poller=poller)


def test_extracts_ready_prefix_in_order():
    tree = build_tree(["A", "B", None])
    extractor = make_extractor(lambda: tree)
    delivered = []

    extractor.start_polling("items", (1,), 1000, on_ready=delivered.append)
    extractor.poller.run_until_idle()

    assert len(delivered) == 1
    records = delivered[0]
    assert [r.text for r in records] == ["A", "B"]
    assert [r.identifier for r in records] == ["100", "101"]
    assert all(r.tag == "twtl_v1" for r in records)


def test_later_tick_sees_newly_rendered_child():
    tree = build_tree(["A", "B", None])
    extractor = make_extractor(lambda: tree)
    assert len(extractor.try_extract((1,))) == 2

    tree.children[1].children[2].text = "C"
    records = extractor.try_extract((1,))
    assert [r.text for r in records] == ["A", "B", "C"]


def test_waits_until_anchor_resolves_and_renders():
    root = TreeNode(children=[TreeNode(text="header")])

    def add_container(r):
        r.children.append(TreeNode(children=[TreeNode(), TreeNode()]))

    def render_first(r):
        r.children[1].children[0].text = "first"

    provider = LiveTree(root, {2: add_container, 4: render_first})
    extractor = make_extractor(provider)
    delivered = []
    task = extractor.start_polling("items", (1,), 500, on_ready=delivered.append)
    extractor.poller.run_until_idle()

    assert [r.text for r in delivered[0]] == ["first"]
    assert task.attempts == 5
    assert task.state == TaskState.DELIVERED


def test_unresolvable_anchor_fails_after_budget():
    tree = build_tree(["A"])
    extractor = make_extractor(lambda: tree, max_attempts=5)
    failed = []
    task = extractor.start_polling("items", (7, 0), 1000, on_ready=lambda r: None, on_failed=failed.append)
    extractor.poller.run_until_idle()
    assert task.state == TaskState.FAILED
    assert failed == [task]


def test_second_start_replaces_first():
    tree = build_tree(["A"])
    extractor = make_extractor(lambda: tree)
    delivered = []
    first = extractor.start_polling("items", (9,), 1000, on_ready=lambda r: delivered.append("first"))
    extractor.start_polling("items", (1,), 1000, on_ready=lambda r: delivered.append("second"))
    extractor.poller.run_until_idle()
    assert delivered == ["second"]
    assert first.token.cancelled
    assert first.state == TaskState.CANCELLED


def test_missing_identifier_uses_placeholder():
    tree = TreeNode(children=[TreeNode(children=[TreeNode(text="no link", markup="<span>hi</span>")])])
    records = make_extractor(lambda: tree).try_extract((0,))
    assert records[0].identifier is None
    assert records[0].render() == "twtl_v1\nUNKNOWNID\nno link"


def test_marker_descends_into_labelled_child():
    entry = TreeNode(text="hello\nAdd to word list \ndefs", children=[
        TreeNode(text="hello"),
        TreeNode(text="greeting"),
    ])
    tree = TreeNode(children=[TreeNode(children=[TreeNode(text="ad"), entry])])
    extractor = make_extractor(lambda: tree)
    records = extractor.try_extract((0,), marker="\nAdd to word list \n")
    assert [r.text for r in records] == ["hello", "greeting"]
    assert extractor.try_extract((0,), marker="not there") is None


def test_custom_tag_and_pattern():
    tree = TreeNode(children=[TreeNode(children=[TreeNode(text="x", markup='data-id="7"')])])
    extractor = make_extractor(lambda: tree, record_tag="camd", id_pattern=r'data-id="(\d+)"', unknown_id="?")
    record = extractor.try_extract((0,))[0]
    assert record.render() == "camd\n7\nx"


def test_extract_once_returns_records():
    tree = build_tree(["A", "B"])
    records = make_extractor(lambda: tree).extract_once((1,))
    assert [r.text for r in records] == ["A", "B"]


def test_extract_once_returns_none_on_failure():
    tree = build_tree(["A"])
    assert make_extractor(lambda: tree, max_attempts=3).extract_once((4,)) is None


def test_record_parse_roundtrip_with_multiline_text():
    record = ExtractionRecord(tag="twtl_v1", identifier="55", text="line one\nline two")
    parsed = ExtractionRecord.parse(record.render())
    assert parsed == record
    assert ExtractionRecord.parse("twtl_v1\nUNKNOWNID\nt").identifier is None
    with pytest.raises(ValueError):
        ExtractionRecord.parse("just a tag")


def test_pattern_without_group_rejected_up_front():
    with pytest.raises(ValueError, match="capture group"):
        make_extractor(lambda: build_tree(["A"]), id_pattern="no-group")


def test_browser_item_id_and_text_come_from_one_read():
    driver = MagicMock()
    driver.execute_script.return_value = {
        "t": "old tweet",
        "c": [{"t": "old tweet", "h": '<a href="/u/status/1/">old tweet</a>', "c": []}],
    }
    extractor = make_extractor(BrowserTree(driver))

    records = extractor.try_extract((0,))

    assert [r.render() for r in records] == ["twtl_v1\n1\nold tweet"]
    assert driver.execute_script.call_count == 1


def test_browser_marker_reads_one_level_deeper():
    driver = MagicMock()
    driver.execute_script.return_value = {
        "t": "ad\nhello",
        "c": [
            {"t": "ad", "c": []},
            {"t": "hello\nAdd to word list \ndefs", "c": [
                {"t": "hello", "h": "<b>hello</b>", "c": []},
            ]},
        ],
    }
    extractor = make_extractor(BrowserTree(driver))

    records = extractor.try_extract((3,), marker="\nAdd to word list \n")

    assert [r.text for r in records] == ["hello"]
    assert driver.execute_script.call_args.args[1:] == ([3], 2)
