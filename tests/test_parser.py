import pytest

from treeftp.core.errors import BadResponse, ControlChannelClosed
from treeftp.core.parser import FTPResponse, ResponseParser


def test_multiline_reply_keeps_line_order():
    response = ResponseParser.parse("230-Hi\r\n230 Done\r\n")
    assert response.code == 230
    assert response.text == "230-Hi230 Done"
    assert response.lines == ["230-Hi", "230 Done"]


def test_multiline_reply_ends_only_on_same_code_and_space():
    response = ResponseParser.parse([
        "220-Welcome",
        "220-still talking",
        "221 not the end",
        "220 ready",
        "230 belongs to the next reply",
    ])
    assert response.code == 220
    assert response.lines[-1] == "220 ready"
    assert len(response.lines) == 4


def test_single_line_reply():
    response = ResponseParser.parse("257 \"/pub\" is the current directory")
    assert response.code == 257
    assert response.is_success
    assert response.lines == ["257 \"/pub\" is the current directory"]


@pytest.mark.parametrize("line", ["", "2", "22"])
def test_line_shorter_than_three_characters_is_bad(line):
    with pytest.raises(BadResponse):
        ResponseParser.parse([line])


def test_non_numeric_code_is_bad():
    with pytest.raises(BadResponse):
        ResponseParser.parse(["abc hello"])


def test_end_of_stream_before_reply():
    with pytest.raises(ControlChannelClosed):
        ResponseParser.parse([])


def test_end_of_stream_inside_multiline_reply():
    with pytest.raises(ControlChannelClosed):
        ResponseParser.parse(["230-Hi", "more"])


def test_code_classes():
    assert FTPResponse(150, ["150 ok"]).is_preliminary
    assert FTPResponse(331, ["331 pass"]).is_intermediate
    assert FTPResponse(550, ["550 no"]).is_error
    assert FTPResponse(550, ["550 no"]).code_class == 5


def test_pasv_reply():
    response = ResponseParser.parse("227 Entering (127,0,0,1,19,136)")
    assert ResponseParser.parse_pasv_response(response) == ("127.0.0.1", 19 * 256 + 136)


def test_pasv_reply_uses_first_parenthesis_pair():
    response = ResponseParser.parse("227 Entering Passive Mode (10,0,0,2,4,1) (1,2,3,4,5,6)")
    assert ResponseParser.parse_pasv_response(response) == ("10.0.0.2", 1025)


@pytest.mark.parametrize("reply", [
    "227 Entering Passive Mode",
    "227 Entering Passive Mode (127,0,0,1,19)",
    "227 Entering Passive Mode (127,0,0,one,19,136)",
    "227 Entering Passive Mode (127,0,0,1,19,999)",
])
def test_malformed_pasv_reply(reply):
    with pytest.raises(BadResponse):
        ResponseParser.parse_pasv_response(ResponseParser.parse(reply))


def test_port_argument():
    assert ResponseParser.format_port_command("192.168.1.10", 5000) == "192,168,1,10,19,136"
    assert ResponseParser.format_port_command("10.0.0.1", 255) == "10,0,0,1,0,255"


def test_port_argument_rejects_hostnames():
    with pytest.raises(ValueError):
        ResponseParser.format_port_command("localhost", 21)


def test_pwd_reply():
    response = ResponseParser.parse('257 "/home/user" is current directory')
    assert ResponseParser.parse_pwd_response(response) == "/home/user"


def test_pwd_reply_without_quotes():
    with pytest.raises(BadResponse):
        ResponseParser.parse_pwd_response(ResponseParser.parse("257 /home/user"))
