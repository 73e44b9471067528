"""Tests for the HTTP link validation gateway."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from shared.remote.links import NOT_LINKED, HttpLinkValidator, LinkCheckResult, parse_link_response


def _mock_httpx_response(payload: object):
    """Patch httpx.AsyncClient so POST returns the given JSON payload."""
    patcher = patch("httpx.AsyncClient")
    mock_client = patcher.start()
    mock_instance = AsyncMock()
    mock_client.return_value.__aenter__.return_value = mock_instance
    response = MagicMock()
    response.content = b"x"
    response.json.return_value = payload
    mock_instance.post.return_value = response
    return patcher, mock_instance


class TestParseLinkResponse:
    def test_accepts_single_object(self):
        result = parse_link_response({"is_linked": True, "shared_club_name": "Liverpool", "overlap_start": 2017})
        assert result.is_linked is True
        assert result.shared_club_name == "Liverpool"
        assert result.overlap_start == 2017
        assert result.overlap_end is None

    def test_accepts_one_element_list(self):
        result = parse_link_response([{"is_linked": True, "shared_club_id": "Q1130849"}])
        assert result.is_linked is True
        assert result.shared_club_id == "Q1130849"

    @pytest.mark.parametrize("payload", [None, []])
    def test_empty_payload_is_not_linked(self, payload):
        assert parse_link_response(payload) == NOT_LINKED

    def test_rejects_malformed_payload(self):
        with pytest.raises(ValueError):
            parse_link_response({"is_linked": "definitely"})


class TestHttpLinkValidator:
    async def test_posts_player_ids_to_rpc(self):
        patcher, client = _mock_httpx_response([{"is_linked": True, "shared_club_name": "Ajax"}])
        try:
            validator = HttpLinkValidator("https://api.example.test/", api_key="k")
            result = await validator.check_linked("Q1", "Q2")
        finally:
            patcher.stop()

        assert result == LinkCheckResult(is_linked=True, shared_club_name="Ajax")
        url = client.post.call_args.args[0]
        assert url == "https://api.example.test/rest/v1/rpc/check_players_linked"
        assert client.post.call_args.kwargs["json"] == {"player_a_qid": "Q1", "player_b_qid": "Q2"}
        assert client.post.call_args.kwargs["headers"]["apikey"] == "k"

    async def test_transport_errors_propagate(self):
        patcher = patch("httpx.AsyncClient")
        mock_client = patcher.start()
        mock_instance = AsyncMock()
        mock_client.return_value.__aenter__.return_value = mock_instance
        mock_instance.post.side_effect = httpx.RequestError("Connection refused")
        try:
            validator = HttpLinkValidator("https://api.example.test")
            with pytest.raises(httpx.RequestError):
                await validator.check_linked("Q1", "Q2")
        finally:
            patcher.stop()
