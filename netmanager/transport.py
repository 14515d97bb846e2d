import logging
from pathlib import Path
import tempfile
from typing import Optional, Tuple

import requests


logger = logging.getLogger(__name__)


class Transport:
    """
    Sends requests through a `requests` session.

    Connection pooling, TLS, redirects and timeouts are whatever the session provides. Failures are raised as the
    session raises them; classifying them is up to the caller.
    """

    chunk_size = 64 * 1024

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self.session = session if session is not None else requests.Session()

    def send(self, prepared: requests.PreparedRequest) -> requests.Response:
        logger.info('Sending {} {}'.format(prepared.method, prepared.url))
        return self.session.send(prepared)

    def download(self, url: str) -> Tuple[Path, requests.Response]:
        """
        Download `url` into a temporary file.

        @return
          The path to the downloaded file, which the caller must delete, and the response it came from.
        """
        logger.info('Downloading {}'.format(url))
        response = self.session.get(url, stream=True)
        path = None
        try:
            with tempfile.NamedTemporaryFile(mode='wb', delete=False) as f:
                path = Path(f.name)
                for chunk in response.iter_content(chunk_size=self.chunk_size):
                    f.write(chunk)
        except Exception:
            if path is not None:
                path.unlink()
            raise
        finally:
            response.close()
        logger.info('Download of {} complete.'.format(url))
        return path, response

    def close(self):
        self.session.close()
