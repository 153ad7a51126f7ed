"""
Unit tests for Sans-I/O protocol layer.

These tests verify protocol logic without any HTTP mocking required.
All tests are pure - they test data transformations only.
"""

import pytest
from lxml import etree

from fixture_data import compact_xml
from fixture_data import login_failed_xml
from fixture_data import login_xml
from fixture_data import logout_xml
from fixture_data import no_records_xml
from fixture_data import properties_xml
from retsclient.lib import error
from retsclient.protocol import (
    # Types
    QueryResult,
    RETSConfig,
    RETSMethod,
    RETSProtocol,
    RETSResponse,
    # Parsers
    as_object,
    as_sequence,
    flatten_object,
    parse_compact,
    parse_envelope,
    parse_query,
    parse_reply,
    simplify,
)


class TestRETSTypes:
    """Test core RETS types."""

    def test_config_immutable(self):
        config = RETSConfig(url="https://rets.example.com/login")
        with pytest.raises(AttributeError):
            config.url = "https://other.example.com/"

    def test_config_from_camel_case(self):
        config = RETSConfig.from_dict(
            {
                "loginUrl": "https://rets.example.com/login",
                "username": "user",
                "password": "pass",
                "userAgent": "MyApp/1.0",
                "userAgentPassword": "secret",
                "version": "RETS/1.8",
                "somethingElse": "ignored",
            }
        )
        assert config.url == "https://rets.example.com/login"
        assert config.user_agent == "MyApp/1.0"
        assert config.user_agent_password == "secret"
        assert config.rets_version == "RETS/1.8"

    def test_config_from_strings(self):
        config = RETSConfig.from_dict({"timeout": "12.5", "ssl_verify_cert": "false"})
        assert config.timeout == 12.5
        assert config.ssl_verify_cert is False

    def test_config_keeps_ca_bundle_path(self):
        config = RETSConfig.from_dict({"ssl_verify_cert": "/etc/ssl/ca.pem"})
        assert config.ssl_verify_cert == "/etc/ssl/ca.pem"

    def test_response_ok(self):
        assert RETSResponse(status=200, headers={}, body=b"").ok
        assert not RETSResponse(status=401, headers={}, body=b"").ok

    def test_query_result_as_dict(self):
        assert QueryResult(objects=[{"a": "b"}]).as_dict() == {"Objects": [{"a": "b"}]}
        assert QueryResult(objects=[], count=3).as_dict() == {"Count": 3, "Objects": []}
        assert len(QueryResult(objects=[1, 2])) == 2


class TestSimplify:
    def _simplify(self, xml):
        return simplify(etree.fromstring(xml))

    def test_text_only_leaf(self):
        assert self._simplify("<Name>Sample</Name>") == "Sample"

    def test_empty_leaf(self):
        assert self._simplify("<Name/>") == ""
        assert self._simplify("<Name>   </Name>") == ""

    def test_attributes_and_text(self):
        assert self._simplify('<Name lang="en">Sample</Name>') == {
            "$": {"lang": "en"},
            "_": "Sample",
        }

    def test_repeated_children(self):
        result = self._simplify("<A><B>1</B><C>x</C><B>2</B></A>")
        assert result == {"B": ["1", "2"], "C": "x"}

    def test_namespaces_dropped(self):
        xml = '<r:RETS xmlns:r="http://www.reso.org/rets"><r:Name>x</r:Name></r:RETS>'
        assert self._simplify(xml) == {"Name": "x"}

    def test_comments_ignored(self):
        assert self._simplify("<A><!-- note --><B>1</B></A>") == {"B": "1"}

    def test_fixed_point(self):
        once = self._simplify('<A x="1"><B>1</B><B>2</B></A>')
        assert simplify(once) == once
        assert simplify(simplify(once)) == once
        assert simplify("text") == "text"
        assert simplify(None) is None


class TestCoercion:
    def test_as_sequence(self):
        assert as_sequence(None) == []
        assert as_sequence([1, 2]) == [1, 2]
        assert as_sequence({"a": 1}) == [{"a": 1}]
        assert as_sequence("x") == ["x"]

    def test_as_object(self):
        assert as_object({"a": 1}) == {"a": 1}
        assert as_object(None) == {}
        assert as_object("") == {}
        assert as_object("text") == {"_": "text"}
        with pytest.raises(error.ParseError):
            as_object(["a"])

    def test_flatten_object(self):
        record = {
            "$": {"Id": "7"},
            "Address": {"DisplayStreetNumber": "410"},
            "Lot": {"Description": {"LotAcreage": "1.36"}},
            "Photos": ["a.jpg", "b.jpg"],
        }
        assert flatten_object(record) == {
            "Id": "7",
            "DisplayStreetNumber": "410",
            "LotAcreage": "1.36",
            "Photos": ["a.jpg", "b.jpg"],
        }
        assert flatten_object("text") == "text"


class TestParsers:
    def test_parse_reply_does_not_raise(self):
        envelope = parse_reply(no_records_xml)
        assert envelope.code == 20201
        assert envelope.text == "No Records Found."
        assert not envelope.ok

    def test_parse_reply_empty(self):
        assert parse_reply("   ") is None

    def test_parse_reply_non_numeric_code(self):
        envelope = parse_reply('<RETS ReplyCode="abc" ReplyText=""/>')
        assert envelope.code == error.INVALID_REPLY_CODE
        assert not envelope.ok

    def test_non_numeric_code_is_protocol_error(self):
        with pytest.raises(error.ProtocolError) as excinfo:
            parse_envelope('<RETS ReplyCode="ERR" ReplyText="bad"/>')
        assert excinfo.value.code == -1
        assert str(excinfo.value) == "-1: Invalid Reply Code - ReplyCode 'ERR', bad"

    def test_parse_reply_text_with_declared_encoding(self):
        xml = '<?xml version="1.0" encoding="ISO-8859-1"?><RETS ReplyCode="0" ReplyText="Café"/>'
        assert parse_reply(xml).text == "Café"
        assert parse_reply(xml.encode("iso-8859-1")).text == "Café"

    def test_parse_compact(self):
        result = parse_compact(compact_xml)
        assert result.count == 2
        assert result.objects == [
            {"ListingID": "1001", "ListPrice": "250000", "City": "Springfield"},
            {"ListingID": "1002", "ListPrice": "199000", "City": ""},
        ]

    def test_parse_query_handles_compact(self):
        assert parse_query(compact_xml, "Property").objects == parse_compact(compact_xml).objects

    def test_parse_compact_with_pipe_delimiter(self):
        xml = """<RETS ReplyCode="0" ReplyText="OK">
        <DELIMITER value="7C"/>
        <COLUMNS>|A|B|</COLUMNS>
        <DATA>|1|2|</DATA>
        </RETS>"""
        assert parse_compact(xml).objects == [{"A": "1", "B": "2"}]
        assert parse_compact(xml).count is None

    def test_no_records_error_class(self):
        with pytest.raises(error.NoRecordsFound):
            parse_query(no_records_xml, "Property")

    def test_login_error_class(self):
        with pytest.raises(error.LoginError) as excinfo:
            parse_query(login_failed_xml, "Property")
        assert "20037: Client Authentication Failed" in str(excinfo.value)


def _response(body, status=200, cookies=None, url="https://rets.example.com/rets/x"):
    return RETSResponse(
        status=status,
        headers={},
        body=body.encode("utf-8"),
        cookies=cookies or {},
        url=url,
    )


class TestRETSProtocol:
    """Test the RETSProtocol class."""

    def setup_method(self):
        self.protocol = RETSProtocol(
            RETSConfig(
                url="https://rets.example.com/rets/login",
                username="user",
                password="pass",
                user_agent="MyApp/1.0",
                user_agent_password="secret",
            )
        )

    def _login(self):
        self.protocol.handle_login(
            _response(login_xml, cookies={"RETS-Session-ID": "abc123"})
        )

    def test_login_request(self):
        request = self.protocol.login_request()
        assert request.method == "GET"
        assert request.url == "https://rets.example.com/rets/login"
        assert request.request_params.auth == "digest"
        assert request.request_params.username == "user"
        assert "RETS-UA-Authorization" in request.request_params.headers

    def test_search_before_login(self):
        with pytest.raises(error.RETSError, match="Not logged in"):
            self.protocol.search_request("Property", "RES", "(Status=A)")

    def test_handle_login(self):
        self._login()
        assert self.protocol.logged_in
        assert self.protocol.session_id == "abc123"
        assert self.protocol.urls["SEARCH"] == "/rets/search"
        assert self.protocol.urls["GET_METADATA"] == "/rets/getmetadata"
        assert "MemberName" not in self.protocol.urls
        assert self.protocol.server_info["MemberName"] == "Jane Agent"

    def test_session_id_enters_ua_digest(self):
        before = self.protocol.request_params().headers["RETS-UA-Authorization"]
        self._login()
        params = self.protocol.request_params()
        assert params.headers["RETS-UA-Authorization"] != before
        assert params.cookies == {"RETS-Session-ID": "abc123"}

    def test_search_request(self):
        self._login()
        request = self.protocol.search_request(
            "Property", "RES", "(Status=A)", select=["ListingID", "ListPrice"], limit=5
        )
        assert request.method == "POST"
        assert request.url == "https://rets.example.com/rets/search"
        assert request.data["SearchType"] == "Property"
        assert request.data["Class"] == "RES"
        assert request.data["Select"] == "ListingID,ListPrice"
        assert request.data["Limit"] == "5"
        assert "Offset" not in request.data

    def test_metadata_request(self):
        self._login()
        request = self.protocol.metadata_request("METADATA-CLASS", "Property")
        assert request.method == "GET"
        assert request.url == "https://rets.example.com/rets/getmetadata"
        assert request.params == {
            "Type": "METADATA-CLASS",
            "ID": "Property",
            "Format": "STANDARD-XML",
        }

    def test_get_object_request(self):
        self._login()
        request = self.protocol.get_object_request("Property", "Photo", "1001:*")
        assert request.method == "GET"
        assert request.url == "https://rets.example.com/rets/getobject"
        assert request.params == {
            "Resource": "Property",
            "Type": "Photo",
            "ID": "1001:*",
            "Location": "0",
        }

    def test_parse_object_error_reply(self):
        self._login()
        response = RETSResponse(
            status=200,
            headers={"Content-Type": "text/xml; charset=utf-8"},
            body=b'<RETS ReplyCode="20403" ReplyText="No Object Found"/>',
        )
        with pytest.raises(error.ProtocolError, match="20403: No Object Found"):
            self.protocol.parse_object(response)

    def test_unannounced_capability(self):
        self._login()
        assert RETSMethod.UPDATE.name not in self.protocol.urls
        with pytest.raises(error.RETSError, match="Update"):
            self.protocol._request(RETSMethod.UPDATE)

    def test_login_failed(self):
        with pytest.raises(error.LoginError):
            self.protocol.handle_login(_response(login_failed_xml))
        assert not self.protocol.logged_in

    def test_login_without_rets_response(self):
        with pytest.raises(error.ParseError, match="RETS-RESPONSE"):
            self.protocol.handle_login(_response('<RETS ReplyCode="0" ReplyText="OK"/>'))

    def test_http_unauthorized(self):
        with pytest.raises(error.AuthorizationError):
            self.protocol.handle_login(_response("", status=401))

    def test_http_unauthorized_reports_auth_types(self):
        response = RETSResponse(
            status=401,
            headers={"WWW-Authenticate": 'Digest realm="rets", Basic realm="rets"'},
            body=b"",
            url="https://rets.example.com/rets/login",
        )
        with pytest.raises(error.AuthorizationError, match="basic, digest"):
            self.protocol.handle_login(response)

    def test_http_error(self):
        with pytest.raises(error.TransportError) as excinfo:
            self.protocol.handle_login(_response("", status=500))
        assert excinfo.value.status == 500

    def test_parse_search(self):
        self._login()
        result = self.protocol.parse_search(_response(properties_xml), "ResidentialProperty")
        assert result.count == 2
        assert len(result.objects) == 2

    def test_parse_search_no_records(self):
        self._login()
        result = self.protocol.parse_search(_response(no_records_xml), "Property")
        assert result.as_dict() == {"Count": 0, "Objects": []}

    def test_handle_logout(self):
        self._login()
        info = self.protocol.handle_logout(_response(logout_xml))
        assert info == {"ConnectTime": "32", "SignOffMessage": "Goodbye"}
        assert not self.protocol.logged_in
        assert self.protocol.session_id is None
        assert self.protocol.cookies == {}

    def test_handle_logout_without_body(self):
        self._login()
        assert self.protocol.handle_logout(_response('<RETS ReplyCode="0" ReplyText="Bye"/>')) == {}
