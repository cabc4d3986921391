import contextlib

from spend_analytics.field_map import SKIP
from spend_analytics.term_ui import (
    UNMAPPED,
    choose_option,
    confirm,
    select_category,
    select_column_target,
    select_number_format,
)

# Compatibility import across prompt_toolkit versions
try:  # pragma: no cover - fallback path depends on library version
    from prompt_toolkit.input import create_pipe_input
except ImportError:  # pragma: no cover
    from prompt_toolkit.input.defaults import create_pipe_input

from prompt_toolkit import PromptSession
from prompt_toolkit.output import DummyOutput


@contextlib.contextmanager
def pipe_session():
    with create_pipe_input() as pipe:
        sess = PromptSession(input=pipe, output=DummyOutput())
        yield pipe, sess


def test_select_category_accepts_default_with_enter():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\r")
        assert select_category("ZLAB01", default="Office and Print", session=sess) == "Office and Print"


def test_select_category_is_case_insensitive():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0bproduction equipment\r")
        result = select_category("ZZ99", default="Office and Print", session=sess)
        assert result == "Production Equipment"


def test_select_category_blank_leaves_value_unmapped():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\r")
        assert select_category("ZZ99", session=sess) == UNMAPPED


def test_select_column_target_defaults_to_skip():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\r")
        assert select_column_target("Remark", default="", session=sess) == SKIP
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0bnotes\r")
        assert select_column_target("Remark", session=sess) == "notes"


def test_invalid_answer_is_rejected_until_valid():
    with pipe_session() as (pipe, sess):
        pipe.send_text("DE\r\x01\x0beu\r")
        assert select_number_format(default="US", session=sess) == "EU"


def test_choose_option_returns_canonical_spelling():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0bBETA\r")
        assert choose_option(["alpha", "Beta"], message="> ", session=sess) == "Beta"


def test_confirm():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\r")
        assert confirm("Import? ", session=sess) is True
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0bn\r")
        assert confirm("Import? ", session=sess) is False
