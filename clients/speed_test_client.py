"""
Network speed test against Cloudflare's public speed endpoints.

Measures download and upload throughput (Mbps) and latency (ms) from the
server's point of view. Jitter is the mean difference between consecutive
latency samples.
"""

import logging
from statistics import mean
from time import perf_counter

import requests
from pydantic import BaseModel

logger = logging.getLogger(__name__)

DOWNLOAD_URL = "https://speed.cloudflare.com/__down"
UPLOAD_URL = "https://speed.cloudflare.com/__up"
PING_URL = "https://1.1.1.1/cdn-cgi/trace"


class SpeedTestError(Exception):
    """Raised when a speed test request fails."""


class SpeedTestResult(BaseModel):
    download: float  # Mbps
    upload: float  # Mbps
    ping: float  # ms
    jitter: float  # ms


def _mbps(num_bytes: int, seconds: float) -> float:
    return round(num_bytes * 8 / max(seconds, 1e-6) / 1_000_000, 2)


class SpeedTestClient:
    """Run a download, upload and latency test over HTTP."""

    def __init__(
        self,
        download_bytes: int = 10_000_000,
        upload_bytes: int = 1_000_000,
        ping_samples: int = 5,
        timeout: float = 30,
    ):
        if ping_samples < 2:
            raise ValueError("ping_samples must be at least 2")

        self.download_bytes = download_bytes
        self.upload_bytes = upload_bytes
        self.ping_samples = ping_samples
        self.timeout = timeout

    def _timed(self, method: str, url: str, **kwargs) -> tuple[requests.Response, float]:
        """
        Issue one request and return it with its wall time in seconds.

        Raises:
            SpeedTestError: Connection failure or non-2xx status
        """
        start = perf_counter()
        try:
            response = requests.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Speed test request to {url} failed: {e}")
            raise SpeedTestError(f"Speed test failed: {e}")
        return response, perf_counter() - start

    def measure_download(self) -> float:
        response, elapsed = self._timed("GET", DOWNLOAD_URL, params={"bytes": self.download_bytes})
        return _mbps(len(response.content), elapsed)

    def measure_upload(self) -> float:
        _, elapsed = self._timed(
            "POST",
            UPLOAD_URL,
            data=b"\0" * self.upload_bytes,
            headers={"Content-Type": "application/octet-stream"},
        )
        return _mbps(self.upload_bytes, elapsed)

    def measure_latency(self) -> tuple[float, float]:
        """Return (ping, jitter) in milliseconds."""
        samples = [self._timed("GET", PING_URL)[1] * 1000 for _ in range(self.ping_samples)]
        jitter = mean(abs(b - a) for a, b in zip(samples, samples[1:]))
        return round(mean(samples), 1), round(jitter, 1)

    def run(self) -> SpeedTestResult:
        """
        Run the full test.

        Raises:
            SpeedTestError: If any request fails
        """
        download = self.measure_download()
        upload = self.measure_upload()
        ping, jitter = self.measure_latency()

        logger.info(f"Speed test: {download} Mbps down, {upload} Mbps up, {ping} ms ping")
        return SpeedTestResult(download=download, upload=upload, ping=ping, jitter=jitter)
