import pytest
from forkline.core.tree import TreeNode, as_path, child_at, parse_path, resolve


def build_tree():
    #  root
    #  ├── 0: "head"
    #  └── 1: (container)
    #       ├── 0: "A"
    #       └── 1: "B"
    return TreeNode(children=[
        TreeNode(text="head"),
        TreeNode(children=[TreeNode(text="A"), TreeNode(text="B")]),
    ])


def test_resolve_follows_indices():
    root = build_tree()
    assert resolve(root, (1, 1)).text == "B"
    assert resolve(root, [0]).text == "head"


def test_resolve_empty_path_is_root():
    root = build_tree()
    assert resolve(root, ()) is root


def test_resolve_stops_on_out_of_range():
    root = build_tree()
    assert resolve(root, (1, 5)) is None
    assert resolve(root, (3, 0)) is None
    # Past a leaf
    assert resolve(root, (0, 0)) is None


def test_resolve_never_raises_on_bad_input():
    assert resolve(build_tree(), (-1,)) is None
    assert resolve(None, (0,)) is None
    assert child_at(None, 0) is None


def test_parse_path_formats():
    assert parse_path("2,0,1") == (2, 0, 1)
    assert parse_path("[2, 0, 1]") == (2, 0, 1)
    assert parse_path("") == ()
    with pytest.raises(ValueError):
        parse_path("1,-2")
    with pytest.raises(ValueError):
        parse_path("a,b")


def test_as_path_is_immutable_tuple():
    path = as_path([1, 2, 3])
    assert path == (1, 2, 3)
    assert isinstance(path, tuple)


def test_tree_dict_roundtrip_keeps_missing_text():
    root = build_tree()
    rebuilt = TreeNode.from_dict(root.to_dict())
    assert rebuilt.text is None
    assert resolve(rebuilt, (1, 0)).text == "A"
    assert len(rebuilt.children[1].children) == 2
