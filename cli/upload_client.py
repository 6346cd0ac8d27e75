"""HTTP client for the chunked upload server."""

import math
import os
import random
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

import httpx

from cli.config import Config
from common.constants import PARTIAL_FILE_SUFFIX
from common.logging_config import get_logger
from common.utils import generate_upload_id

logger = get_logger(__name__)


class UploadClientError(Exception):
    """Raised when the server rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class UploadClient:
    """HTTP client for the upload API with retry logic and parallel chunk uploads."""

    def __init__(self, config: Config, session: Optional[httpx.Client] = None):
        """
        Initialize upload client.

        Args:
            config: Configuration instance
            session: Optional pre-built httpx.Client (e.g. a test client)
        """
        self.config = config
        self.session = session or httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout()
        )
        logger.info(f"Initialized UploadClient [base_url={config.get_base_url()}]")

    def close(self) -> None:
        self.session.close()

    def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method (GET, POST, DELETE, etc.)
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses config default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            UploadClientError: If max retries are exceeded on network errors
        """
        retry_config = self.config.get_retry_config()
        max_retries = max_retries if max_retries is not None else retry_config['max_retries']
        backoff = retry_config['retry_backoff_multiplier']

        request_id = str(uuid.uuid4())
        kwargs.setdefault('headers', {})['X-Request-ID'] = request_id

        logger.debug(f"Making request: {method} {endpoint} [request_id={request_id}]")

        last_exception = None
        for attempt in range(max_retries + 1):
            try:
                response = self.session.request(method, endpoint, **kwargs)
            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                if attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={request_id}]"
                    )
                    time.sleep(delay)
                    continue
                logger.error(
                    f"Network error (max retries exceeded): {method} {endpoint} error={e} [request_id={request_id}]"
                )
                break

            logger.debug(
                f"Response received: {method} {endpoint} status={response.status_code} [request_id={request_id}]"
            )

            if response.status_code >= 500 and attempt < max_retries:
                delay = backoff ** attempt
                logger.warning(
                    f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                    f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={request_id}]"
                )
                time.sleep(delay)
                continue

            return response

        if isinstance(last_exception, httpx.TimeoutException):
            raise UploadClientError("Request timed out. Server may be overloaded.") from last_exception
        raise UploadClientError("Cannot connect to upload server. Is it running?") from last_exception

    def _raise_for_error(self, response: httpx.Response) -> None:
        if response.status_code < 400:
            return

        try:
            error_data = response.json()
            detail = error_data.get('detail', 'Unknown error')
            code = error_data.get('code', 'UNKNOWN')
        except ValueError:
            detail = response.text or 'Unknown error'
            code = 'UNKNOWN'

        raise UploadClientError(f"{detail} (Code: {code})", status_code=response.status_code, code=code)

    def upload_chunk(self, upload_id: str, chunk_index: int, data: bytes) -> dict:
        """
        Upload one chunk.

        Returns:
            Server acknowledgement
        """
        response = self._request_with_retry(
            'POST',
            '/api/upload-chunk',
            params={'fileId': upload_id, 'chunkIndex': str(chunk_index)},
            files={'chunk': (f"{chunk_index}.chunk", data, 'application/octet-stream')},
        )
        self._raise_for_error(response)
        return response.json()

    def merge(self, upload_id: str, file_name: str, expected_chunks: Optional[int] = None) -> dict:
        """
        Ask the server to merge the chunks of an upload.

        Returns:
            Server merge response with the public URL of the file
        """
        payload = {'fileId': upload_id, 'fileName': file_name}
        if expected_chunks is not None:
            payload['expectedChunks'] = expected_chunks

        response = self._request_with_retry('POST', '/api/merge', json=payload)
        self._raise_for_error(response)
        return response.json()

    def abandon(self, upload_id: str) -> dict:
        response = self._request_with_retry('DELETE', '/api/upload/' + quote(upload_id, safe=''))
        self._raise_for_error(response)
        return response.json()

    def fetch(self, file_name: str, output_path: Optional[str] = None) -> Path:
        """
        Download a merged file.

        Args:
            file_name: Name of the merged file on the server
            output_path: Destination path (defaults to ./<file_name>)

        Returns:
            Path of the written file
        """
        destination = Path(output_path) if output_path else Path.cwd() / file_name
        if destination.is_dir():
            destination = destination / file_name

        endpoint = '/ReceivedFiles/' + quote(file_name, safe='')
        with self.session.stream('GET', endpoint) as response:
            if response.status_code >= 400:
                response.read()
                self._raise_for_error(response)

            destination.parent.mkdir(parents=True, exist_ok=True)
            partial = destination.with_name(f".{destination.name}.{uuid.uuid4().hex}{PARTIAL_FILE_SUFFIX}")
            try:
                with open(partial, 'wb') as f:
                    for piece in response.iter_bytes():
                        f.write(piece)
                os.replace(partial, destination)
            except BaseException:
                partial.unlink(missing_ok=True)
                raise

        logger.info(f"Fetched {file_name} to {destination}")
        return destination

    def plan_chunks(self, file_size: int) -> List[int]:
        """
        Compute the chunk indices needed for a file. An empty file still sends one empty chunk.
        """
        chunk_size = self.config.get_chunk_size()
        return list(range(max(1, math.ceil(file_size / chunk_size))))

    def _read_chunk(self, path: Path, chunk_index: int) -> bytes:
        chunk_size = self.config.get_chunk_size()
        with open(path, 'rb') as f:
            f.seek(chunk_index * chunk_size)
            return f.read(chunk_size)

    def upload_file(
        self,
        path: str,
        file_name: Optional[str] = None,
        upload_id: Optional[str] = None,
        shuffle: bool = False,
    ) -> dict:
        """
        Split a local file into chunks, upload them concurrently and merge them.

        Args:
            path: Local file to upload
            file_name: Name for the merged file (defaults to the local file name)
            upload_id: Upload identifier (generated if omitted)
            shuffle: Send chunks in random order

        Returns:
            Server merge response

        Raises:
            FileNotFoundError: If the local file does not exist
            UploadClientError: If any chunk upload or the merge fails
        """
        source = Path(path)
        if not source.is_file():
            raise FileNotFoundError(f"No such file: {path}")

        file_name = file_name or source.name
        upload_id = upload_id or generate_upload_id()
        indices = self.plan_chunks(source.stat().st_size)

        order = list(indices)
        if shuffle:
            random.shuffle(order)

        logger.info(f"Uploading {source} as {file_name} in {len(indices)} chunks [upload_id={upload_id}]")

        def send(chunk_index: int) -> dict:
            return self.upload_chunk(upload_id, chunk_index, self._read_chunk(source, chunk_index))

        with ThreadPoolExecutor(max_workers=self.config.get_parallel_uploads()) as pool:
            list(pool.map(send, order))

        result = self.merge(upload_id, file_name, expected_chunks=len(indices))
        logger.info(f"Merged {file_name} ({result.get('size')} bytes) [upload_id={upload_id}]")
        return result
