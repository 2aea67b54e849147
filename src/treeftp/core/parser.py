"""
Response parser for FTP protocol
Handles parsing of server responses (RFC 959 section 4.2)
"""

import re

from .errors import BadResponse, ControlChannelClosed


class FTPResponse:
    """Represents an FTP server response"""

    def __init__(self, code, lines):
        """
        Initialize FTP response

        Args:
            code: Response code (e.g., 220, 230)
            lines: Raw response lines from server, in arrival order
        """
        self.code = code
        self.lines = list(lines)

    @property
    def text(self):
        """Full raw reply, lines concatenated in order"""
        return ''.join(self.lines)

    @property
    def code_class(self):
        """Hundreds digit of the code"""
        return self.code // 100

    @property
    def is_preliminary(self):
        """Check if response is preliminary (1xx)"""
        return self.code_class == 1

    @property
    def is_success(self):
        """Check if response indicates success (2xx)"""
        return self.code_class == 2

    @property
    def is_intermediate(self):
        """Check if response is intermediate (3xx)"""
        return self.code_class == 3

    @property
    def is_error(self):
        """Check if response is error (4xx or 5xx)"""
        return self.code_class >= 4

    def __str__(self):
        return '\n'.join(self.lines)

    def __repr__(self):
        return f"FTPResponse(code={self.code}, text={self.text!r})"


class ResponseParser:
    """Parser for FTP server responses"""

    PASV_PATTERN = re.compile(r'\(([^)]*)\)')

    @staticmethod
    def read(connection):
        """
        Read one complete, possibly multi-line, reply

        Args:
            connection: Anything with a recv_line() returning a str or None

        Returns:
            FTPResponse: Parsed response object

        Raises:
            ControlChannelClosed: Stream ended before a complete reply
            BadResponse: First line too short or without a numeric code
        """
        first_line = connection.recv_line()
        if first_line is None:
            raise ControlChannelClosed("Control channel has been closed by the FTP server")

        code = ResponseParser.parse_code(first_line)
        lines = [first_line]

        # Check if multiline response '-' follows the code
        if len(first_line) > 3 and first_line[3] == '-':
            terminator = first_line[:3] + ' '
            while True:
                line = connection.recv_line()
                if line is None:
                    raise ControlChannelClosed(
                        f"Control channel closed inside a multi-line {code} reply")
                lines.append(line)
                # End of multiline when we see "code<space>"
                if line.startswith(terminator):
                    break

        return FTPResponse(code, lines)

    @staticmethod
    def parse(lines):
        """
        Parse an already received reply

        Args:
            lines: List of response lines or a single string (CRLF separated)

        Returns:
            FTPResponse: Parsed response object
        """
        if isinstance(lines, str):
            lines = lines.splitlines()
        return ResponseParser.read(_LineFeed(lines))

    @staticmethod
    def parse_code(line):
        """Numeric code at the start of a reply line"""
        if len(line) < 3:
            raise BadResponse(f"The response is badly formatted or incomplete: {line!r}")
        digits = line[:3]
        if not digits.isdigit():
            raise BadResponse(f"Reply does not start with a 3-digit code: {line!r}")
        return int(digits)

    @staticmethod
    def parse_pasv_response(response):
        """
        Parse PASV response to extract host and port

        Args:
            response: FTPResponse object from PASV command

        Returns:
            tuple: (host, port)

        Example:
            "227 Entering Passive Mode (192,168,1,1,234,56)"
            Returns: ("192.168.1.1", 60024)  # 234*256 + 56
        """
        match = ResponseParser.PASV_PATTERN.search(response.text)
        if not match:
            raise BadResponse(f"Invalid PASV response: {response.text}")

        try:
            numbers = [int(part) for part in match.group(1).split(',')]
        except ValueError as e:
            raise BadResponse(f"Invalid PASV response: {response.text}") from e
        if len(numbers) != 6 or any(n < 0 or n > 255 for n in numbers):
            raise BadResponse(f"Invalid PASV response: {response.text}")

        h1, h2, h3, h4, p1, p2 = numbers
        return f"{h1}.{h2}.{h3}.{h4}", p1 * 256 + p2

    @staticmethod
    def format_port_command(host, port):
        """
        Format PORT command argument

        Args:
            host: IP address string (e.g., "192.168.1.1")
            port: Port number

        Returns:
            str: Formatted argument (e.g., "192,168,1,1,234,56")
        """
        octets = host.split('.')
        if len(octets) != 4 or not all(o.isdigit() for o in octets):
            raise ValueError(f"Invalid IPv4 address: {host}")

        # Calculate port bytes
        p1 = port >> 8
        p2 = port & 0xFF

        return ','.join(octets + [str(p1), str(p2)])

    @staticmethod
    def parse_pwd_response(response):
        """
        Parse PWD response to extract current directory

        Example:
            '257 "/home/user" is current directory'
            Returns: "/home/user"
        """
        text = response.text
        first = text.find('"')
        last = text.find('"', first + 1) if first >= 0 else -1
        if last < 0:
            raise BadResponse(f"No quoted directory in PWD reply: {text}")
        return text[first + 1:last]


class _LineFeed:
    """Replays a fixed list of lines as if read from a connection"""

    def __init__(self, lines):
        self._lines = iter(lines)

    def recv_line(self):
        return next(self._lines, None)
