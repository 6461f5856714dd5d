"""Tests for firefly.core.errors module."""

from __future__ import annotations

import pytest

from firefly.core.errors import (
    ErrorKind,
    ExitCode,
    FireflyError,
    conflict_error,
    exit_code_for,
    failed_error,
    invalid_error,
    io_error,
    not_found_error,
    timeout_error,
    unexpected_error,
    validation_error,
)


class TestErrorKind:
    def test_closed_set(self) -> None:
        """The set of kinds is fixed."""
        assert {k.value for k in ErrorKind} == {
            "VALIDATION",
            "NOT_FOUND",
            "CONFLICT",
            "IO",
            "TIMEOUT",
            "UNEXPECTED",
            "FAILED",
            "INVALID",
        }

    def test_str(self) -> None:
        assert str(ErrorKind.NOT_FOUND) == "NOT_FOUND"


class TestFactories:
    @pytest.mark.parametrize(
        ("factory", "kind"),
        [
            (validation_error, ErrorKind.VALIDATION),
            (not_found_error, ErrorKind.NOT_FOUND),
            (conflict_error, ErrorKind.CONFLICT),
            (io_error, ErrorKind.IO),
            (timeout_error, ErrorKind.TIMEOUT),
            (unexpected_error, ErrorKind.UNEXPECTED),
            (failed_error, ErrorKind.FAILED),
            (invalid_error, ErrorKind.INVALID),
        ],
    )
    def test_kind(self, factory, kind: ErrorKind) -> None:  # noqa: ANN001
        error = factory("msg", source="unit")
        assert error.kind is kind
        assert error.message == "msg"
        assert error.source == "unit"

    def test_timeout_is_retryable_by_default(self) -> None:
        assert timeout_error("slow").retryable is True
        assert timeout_error("slow", retryable=False).retryable is False

    def test_others_not_retryable(self) -> None:
        assert io_error("disk").retryable is False

    def test_details_and_cause(self) -> None:
        cause = OSError("denied")
        error = io_error("cannot write", cause=cause, details=["a", "b"])
        assert error.cause is cause
        assert error.details == ("a", "b")

    def test_unknown_keyword_rejected(self) -> None:
        with pytest.raises(TypeError):
            io_error("cannot write", detail=["a"])  # type: ignore[call-arg]


class TestFireflyError:
    def test_pretty_with_source(self) -> None:
        assert conflict_error("dup", source="registry").pretty() == "[registry] dup"

    def test_pretty_without_source(self) -> None:
        assert FireflyError(kind=ErrorKind.IO, message="disk").pretty() == "disk"

    def test_with_context_keeps_kind_and_links_cause(self) -> None:
        base = not_found_error("key 'x' not found", source="context")
        wrapped = base.with_context("reading version")
        assert wrapped.kind is ErrorKind.NOT_FOUND
        assert wrapped.message == "reading version: key 'x' not found"
        assert wrapped.cause is base

    def test_chain_walks_causes(self) -> None:
        root = ValueError("bad")
        error = validation_error("outer", cause=unexpected_error("inner", cause=root))
        assert error.chain() == ["outer", "inner", "ValueError: bad"]


class TestExitCodes:
    def test_values_are_stable(self) -> None:
        assert int(ExitCode.OK) == 0
        assert int(ExitCode.USER_ERROR) == 1
        assert int(ExitCode.ENV_ERROR) == 2
        assert int(ExitCode.TASK_FAILED) == 3
        assert int(ExitCode.ROLLBACK_FAILED) == 4
        assert int(ExitCode.IO_ERROR) == 5

    def test_is_success(self) -> None:
        assert ExitCode.OK.is_success
        assert not ExitCode.TASK_FAILED.is_success

    @pytest.mark.parametrize(
        ("kind", "code"),
        [
            (ErrorKind.VALIDATION, ExitCode.USER_ERROR),
            (ErrorKind.NOT_FOUND, ExitCode.USER_ERROR),
            (ErrorKind.CONFLICT, ExitCode.USER_ERROR),
            (ErrorKind.INVALID, ExitCode.USER_ERROR),
            (ErrorKind.IO, ExitCode.IO_ERROR),
            (ErrorKind.TIMEOUT, ExitCode.IO_ERROR),
            (ErrorKind.FAILED, ExitCode.ENV_ERROR),
            (ErrorKind.UNEXPECTED, ExitCode.ENV_ERROR),
        ],
    )
    def test_exit_code_for(self, kind: ErrorKind, code: ExitCode) -> None:
        assert exit_code_for(kind) is code
