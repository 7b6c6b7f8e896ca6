"""Argument parsing for the operator CLI."""
import uuid

import pytest

from main import _build_arg_parser


def test_create_content_needs_exactly_one_source():
    parser = _build_arg_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["create-content", "--mode", "execute"])
    with pytest.raises(SystemExit):
        parser.parse_args(["create-content", "--text", "a: b", "--file", "block.txt"])


def test_create_content_defaults():
    args = _build_arg_parser().parse_args(["create-content", "--text", "platform: instagram"])
    assert args.mode == "preview"
    assert args.agent == "noah_bennett"
    assert args.conversation_id is None


def test_retry_parses_uuid():
    action_id = uuid.uuid4()
    args = _build_arg_parser().parse_args(["retry", "--action-id", str(action_id), "--execute"])
    assert args.action_id == action_id
    assert args.execute is True


def test_stuck_default_age():
    args = _build_arg_parser().parse_args(["stuck"])
    assert args.older_than_minutes == 15
