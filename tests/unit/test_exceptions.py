"""Unit tests for the proxy exception hierarchy."""

import pytest

from shipway_proxy.exceptions import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    RemoteError,
    ShipwayProxyError,
    StoreError,
    UnknownError,
    ValidationError,
)


class TestStatusCodes:
    @pytest.mark.parametrize(
        ("error_cls", "status"),
        [
            (ValidationError, 400),
            (NotFoundError, 404),
            (ConflictError, 400),
            (ConfigurationError, 500),
            (UnknownError, 500),
            (ShipwayProxyError, 500),
        ],
    )
    def test_class_defaults(self, error_cls: type[ShipwayProxyError], status: int) -> None:
        assert error_cls("boom").status_code == status

    def test_status_override(self) -> None:
        error = NotFoundError("Valid AWB number not found", status_code=400)
        assert error.status_code == 400
        # The class default is untouched
        assert NotFoundError.status_code == 404

    def test_all_inherit_from_base(self) -> None:
        for error_cls in (ValidationError, NotFoundError, ConflictError, StoreError, RemoteError):
            assert issubclass(error_cls, ShipwayProxyError)


class TestMessageAndExtra:
    def test_message_is_kept(self) -> None:
        error = ConflictError("AWB already generated for this order.")
        assert error.message == "AWB already generated for this order."
        assert str(error) == "AWB already generated for this order."

    def test_extra_defaults_to_empty(self) -> None:
        assert ValidationError("x").extra == {}

    def test_extra_is_kept(self) -> None:
        error = ConflictError("already", extra={"awb_response": {"AWB": "123"}})
        assert error.extra == {"awb_response": {"AWB": "123"}}


class TestStoreError:
    def test_cause(self) -> None:
        cause = RuntimeError("socket closed")
        error = StoreError("Database query failed", cause=cause)
        assert error.cause is cause
        assert error.status_code == 500

    def test_cause_optional(self) -> None:
        assert StoreError("x").cause is None


class TestRemoteError:
    def test_http_failure_uses_carrier_status(self) -> None:
        error = RemoteError(
            "Request failed with status code 422",
            http_status=422,
            body={"success": False, "message": "Invalid order"},
        )
        assert error.status_code == 422
        assert error.http_status == 422
        assert error.carrier_message == "Invalid order"
        assert error.detail == {"success": False, "message": "Invalid order"}

    def test_network_failure_is_500(self) -> None:
        error = RemoteError("connection refused")
        assert error.status_code == 500
        assert error.http_status is None
        assert error.carrier_message is None
        assert error.detail == "connection refused"

    def test_empty_body_falls_back_to_message(self) -> None:
        error = RemoteError("Request failed with status code 502", http_status=502, body="")
        assert error.detail == "Request failed with status code 502"

    def test_non_dict_body_has_no_carrier_message(self) -> None:
        error = RemoteError("failed", http_status=500, body="<html>oops</html>")
        assert error.carrier_message is None
        assert error.detail == "<html>oops</html>"

    def test_empty_carrier_message_is_ignored(self) -> None:
        error = RemoteError("failed", http_status=400, body={"message": ""})
        assert error.carrier_message is None
