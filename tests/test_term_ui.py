import contextlib

import pytest
from prompt_toolkit import PromptSession
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

from expense_dashboard.models import CATEGORIES, PAYMENT_METHODS
from expense_dashboard.term_ui import choose_option


@contextlib.contextmanager
def pipe_session():
    with create_pipe_input() as pipe:
        sess = PromptSession(input=pipe, output=DummyOutput())
        yield pipe, sess


def test_enter_accepts_prefilled_default():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\r")
        assert choose_option(PAYMENT_METHODS, default="UPI", session=sess) == "UPI"


def test_clear_and_type_another_option():
    with pipe_session() as (pipe, sess):
        # Ctrl-A (home), Ctrl-K (kill to end), type the target, Enter
        pipe.send_text("\x01\x0bCash\r")
        assert choose_option(PAYMENT_METHODS, default="UPI", session=sess) == "Cash"


def test_lowercase_answer_returns_canonical_spelling():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0bbank transfer\r")
        result = choose_option(PAYMENT_METHODS, default="UPI", session=sess)
        assert result == "Bank Transfer"


def test_category_prompt_with_default():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0bentertainment\r")
        assert choose_option(CATEGORIES, default="Other", session=sess) == "Entertainment"


def test_empty_options_rejected():
    with pytest.raises(ValueError):
        choose_option([], default="x")


def test_inline_suggestion_completes_prefix_case_insensitively():
    from prompt_toolkit.document import Document

    from expense_dashboard.term_ui import _PrefixSuggest

    suggest = _PrefixSuggest(PAYMENT_METHODS)
    assert suggest.get_suggestion(None, Document("ba")).text == "nk Transfer"
    assert suggest.get_suggestion(None, Document("cash")) is None
    assert suggest.get_suggestion(None, Document("")) is None
