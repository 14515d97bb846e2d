from io import BytesIO
from mockito import mock, unstub, verify, when
from unittest import TestCase

import requests

from netmanager.model import Request
from netmanager.transport import Transport


def streamed_response(status: int, body: bytes) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.raw = BytesIO(body)
    return response


class TestTransport(TestCase):
    def setUp(self):
        self.session = mock(requests.Session)
        self.sut = Transport(self.session)

    def tearDown(self):
        unstub()

    def test_send_delegates_to_the_session(self):
        prepared = Request(url='https://api.example.com/data').prepare()
        response = streamed_response(200, b'{}')
        when(self.session).send(prepared).thenReturn(response)

        self.assertIs(response, self.sut.send(prepared))

    def test_download_writes_the_body_to_a_temporary_file(self):
        body = b'0123456789' * 10000
        when(self.session).get('https://images.example.com/a.png', stream=True) \
            .thenReturn(streamed_response(200, body))

        path, response = self.sut.download('https://images.example.com/a.png')
        try:
            self.assertEqual(200, response.status_code)
            self.assertEqual(body, path.read_bytes())
        finally:
            path.unlink()

    def test_download_failure_propagates(self):
        when(self.session).get('https://images.example.com/a.png', stream=True) \
            .thenRaise(requests.ConnectionError('unreachable'))

        with self.assertRaises(requests.ConnectionError):
            self.sut.download('https://images.example.com/a.png')

    def test_close_closes_the_session(self):
        when(self.session).close().thenReturn(None)

        self.sut.close()

        verify(self.session).close()
