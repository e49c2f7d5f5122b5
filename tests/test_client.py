"""
Tests for odata_expand.client.
"""

import json
from unittest.mock import Mock, patch

import pytest
from requests import Response

from odata_expand.client.service import PersonsService, _join_csv
from odata_expand.client.session import ODataConfig, ODataSession, ODataUpstreamError


def _response(status: int, body, content_type: str = "application/json") -> Response:
    r = Response()
    r.status_code = status
    r._content = (json.dumps(body) if not isinstance(body, str) else body).encode("utf-8")
    r.headers["Content-Type"] = content_type
    return r


class TestODataSession:
    """Tests for ODataSession."""

    def test_url_building(self):
        with ODataSession(ODataConfig(base_url="http://h/odata")) as sess:
            assert sess.base == "http://h/odata/"
            assert sess.url("/Persons") == "http://h/odata/Persons"

    def test_default_headers(self):
        cfg = ODataConfig(base_url="http://h/odata/", headers={"X-Trace": "1"})
        with ODataSession(cfg) as sess:
            assert sess.session.headers["Accept"] == "application/json"
            assert sess.session.headers["OData-Version"] == "4.0"
            assert sess.session.headers["X-Trace"] == "1"

    def test_retry_only_idempotent(self):
        with ODataSession(ODataConfig(base_url="http://h/odata/", retries=5)) as sess:
            retry = sess.session.get_adapter("http://h/odata/").max_retries
            assert retry.total == 5
            assert "POST" not in retry.allowed_methods

    def test_error_extraction(self):
        sess = ODataSession(ODataConfig(base_url="http://h/odata/"))
        r = _response(400, {"error": {"code": "BadRequest", "message": "found 2"}})

        with pytest.raises(ODataUpstreamError) as exc:
            sess.raise_for_error(r, "http://h/odata/Persons")

        assert exc.value.status == 400
        assert exc.value.body == "code=BadRequest | message=found 2"
        assert exc.value.url == "http://h/odata/Persons"

    def test_error_extraction_non_json(self):
        sess = ODataSession(ODataConfig(base_url="http://h/odata/"))
        r = _response(502, "Bad Gateway", content_type="text/plain")

        with pytest.raises(ODataUpstreamError, match="502"):
            sess.raise_for_error(r, "http://h/odata/Persons")

    def test_get_parses_json(self):
        sess = ODataSession(ODataConfig(base_url="http://h/odata/"))
        with patch.object(sess.session, "request", return_value=_response(200, {"value": []})) as req:
            assert sess.get("Persons", params={"$top": "1"}) == {"value": []}

        kwargs = req.call_args.kwargs
        assert kwargs["method"] == "GET"
        assert kwargs["url"] == "http://h/odata/Persons"
        assert kwargs["params"] == {"$top": "1"}

    def test_post_sends_json(self):
        sess = ODataSession(ODataConfig(base_url="http://h/odata/"))
        with patch.object(sess.session, "request", return_value=_response(200, {"Id": 1})) as req:
            assert sess.post("Persons", {"Name": "Ada"}) == {"Id": 1}

        kwargs = req.call_args.kwargs
        assert kwargs["method"] == "POST"
        assert json.loads(kwargs["data"]) == {"Name": "Ada"}

    def test_get_raises_upstream_error(self):
        sess = ODataSession(ODataConfig(base_url="http://h/odata/"))
        err = _response(409, {"error": {"code": "Conflict", "message": "dup"}})
        with patch.object(sess.session, "request", return_value=err):
            with pytest.raises(ODataUpstreamError) as exc:
                sess.post("Persons", {"Name": "Ada"})
        assert exc.value.status == 409


class TestPersonsService:
    """Tests for PersonsService."""

    def test_join_csv(self):
        assert _join_csv(["a", "b", "c"]) == "a,b,c"
        assert _join_csv(["  a  ", "", "c"]) == "a,c"
        assert _join_csv([]) == ""

    def test_read_single_page(self, mock_session, sample_collection_response):
        mock_session.get = Mock(return_value=sample_collection_response)

        svc = PersonsService(mock_session)
        results = svc.read(**{"$top": "2"})

        assert [r["Name"] for r in results] == ["Ada", "Grace"]
        mock_session.get.assert_called_once_with("Persons", params={"$top": "2"})

    def test_read_all_follows_next_link(self, mock_session):
        page1 = {"value": [{"Id": 1}], "@odata.nextLink": "http://h/odata/Persons?$skip=1"}
        page2 = {"value": [{"Id": 2}]}
        mock_session.get = Mock(return_value=page1)
        mock_session.get_url = Mock(return_value=page2)

        svc = PersonsService(mock_session)
        assert svc.read_all() == [{"Id": 1}, {"Id": 2}]
        mock_session.get_url.assert_called_once_with("http://h/odata/Persons?$skip=1")

    def test_iterate_max_pages(self, mock_session):
        page1 = {"value": [{"Id": 1}], "@odata.nextLink": "next"}
        mock_session.get = Mock(return_value=page1)
        mock_session.get_url = Mock()

        svc = PersonsService(mock_session)
        pages = list(svc.iterate(max_pages=1))

        assert pages == [[{"Id": 1}]]
        mock_session.get_url.assert_not_called()

    def test_iterate_stops_on_link_loop(self, mock_session):
        looping = {"value": [{"Id": 1}], "@odata.nextLink": "same"}
        mock_session.get = Mock(return_value=looping)
        mock_session.get_url = Mock(return_value=looping)

        svc = PersonsService(mock_session)
        assert len(list(svc.iterate())) == 2

    def test_query_builds_params(self, mock_session, sample_metadata_xml):
        mock_session.get_text = Mock(return_value=sample_metadata_xml)
        mock_session.get = Mock(return_value={"value": []})

        svc = PersonsService(mock_session)
        svc.query(
            fields=["Name", "Shoe"],
            filter_expr="Age gt 10",
            orderby="Name desc",
            top=5,
            skip=10,
            expand=["Orders", " Pets "],
        )

        mock_session.get.assert_called_once_with("Persons", params={
            "$select": "Name",
            "$filter": "Age gt 10",
            "$orderby": "Name desc",
            "$expand": "Orders,Pets",
            "$top": "5",
            "$skip": "10",
        })

    def test_query_without_validation(self, mock_session):
        mock_session.get = Mock(return_value={"value": []})

        svc = PersonsService(mock_session)
        svc.query(fields=["Shoe"], validate_fields=False)

        mock_session.get.assert_called_once_with("Persons", params={"$select": "Shoe"})
        mock_session.get_text.assert_not_called()

    def test_count(self, mock_session):
        mock_session.get = Mock(return_value={"@odata.count": 7, "value": []})

        svc = PersonsService(mock_session)
        assert svc.count("Age gt 10") == 7
        mock_session.get.assert_called_once_with(
            "Persons", params={"$count": "true", "$top": "0", "$filter": "Age gt 10"}
        )

    def test_create(self, mock_session):
        mock_session.post = Mock(return_value={"Id": 1, "Name": "Ada"})

        svc = PersonsService(mock_session)
        assert svc.create({"Name": "Ada"}) == {"Id": 1, "Name": "Ada"}
        mock_session.post.assert_called_once_with("Persons", {"Name": "Ada"})

    def test_discovery(self, mock_session, sample_metadata_xml):
        mock_session.get_text = Mock(return_value=sample_metadata_xml)

        svc = PersonsService(mock_session)
        assert svc.list_entity_sets() == ["Persons"]
        assert svc.list_fields() == ["Id", "Name", "Age"]
        assert svc.list_navigations() == ["Attributes", "Orders", "Pets"]
