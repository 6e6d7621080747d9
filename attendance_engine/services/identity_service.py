"""Identity verification against the external face comparison service."""
import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from attendance_engine.utils.errors import InvalidInput, VerificationUnavailable

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = re.compile(r'^data:image/[\w.+-]+;base64,')

# Formats accepted by the comparison service
IMAGE_SIGNATURES = {
    b'\xff\xd8\xff': 'jpeg',
    b'\x89PNG\r\n\x1a\n': 'png',
}


@dataclass
class MatchResult:
    """Outcome of one face comparison."""
    matched: bool
    detail: Dict[str, Any] = field(default_factory=dict)


class FaceComparisonError(Exception):
    """Transient failure reported by a face comparator."""


class HttpFaceComparator:
    """Client for the face comparison HTTP endpoint.

    The endpoint receives the stored reference key and the base64 sample
    and answers ``{"matched": bool, "similarity": float}``.
    """

    def __init__(self, url: str, timeout: float = 10, similarity_threshold: float = 90.0):
        self.url = url
        self.timeout = timeout
        self.similarity_threshold = similarity_threshold
        self._session = requests.Session()

    @classmethod
    def from_config(cls, config) -> Optional['HttpFaceComparator']:
        url = config.get('FACE_COMPARE_URL')
        if not url:
            return None
        return cls(
            url,
            timeout=config.get('FACE_COMPARE_TIMEOUT', 10),
            similarity_threshold=config.get('FACE_SIMILARITY_THRESHOLD', 90.0)
        )

    def compare(self, reference_key: str, image_bytes: bytes) -> MatchResult:
        payload = {
            'reference_key': reference_key,
            'image': base64.b64encode(image_bytes).decode('ascii'),
            'similarity_threshold': self.similarity_threshold
        }
        try:
            response = self._session.post(self.url, json=payload, timeout=self.timeout)
        except requests.Timeout as e:
            raise FaceComparisonError(f"Face comparison timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise FaceComparisonError(f"Face comparison request failed: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise FaceComparisonError(f"Face comparison service returned {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise FaceComparisonError("Face comparison service returned invalid JSON") from e
        if not isinstance(body, dict):
            raise FaceComparisonError("Face comparison service returned an unexpected response body")

        if response.status_code >= 400:
            # e.g. no face detected in the sample: a non-match, not an outage
            return MatchResult(False, {'reason': body.get('message', 'Face could not be verified')})

        return MatchResult(
            bool(body.get('matched')),
            {'similarity': body.get('similarity')}
        )


def decode_sample_image(face_image: Any, max_bytes: int) -> bytes:
    """Decode a base64 (optionally data-URI) sample and enforce the size guard."""
    if isinstance(face_image, (bytes, bytearray)):
        image_bytes = bytes(face_image)
    elif isinstance(face_image, str):
        encoded = DATA_URI_PREFIX.sub('', face_image.strip())
        try:
            image_bytes = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            raise InvalidInput("Face image is not valid base64 data")
    else:
        raise InvalidInput("Face image must be a base64 encoded string")

    if not image_bytes:
        raise InvalidInput("Face image is empty")

    if len(image_bytes) > max_bytes:
        raise InvalidInput(
            "Image too large. Please try again with a smaller image.",
            {'size_bytes': len(image_bytes), 'max_bytes': max_bytes}
        )

    if not any(image_bytes.startswith(signature) for signature in IMAGE_SIGNATURES):
        raise InvalidInput("Face image must be a JPEG or PNG image")

    return image_bytes


class IdentityVerifier:
    """Adapter around a face comparator. Holds no state between calls."""

    def __init__(self, comparator, max_image_bytes: int):
        self.comparator = comparator
        self.max_image_bytes = max_image_bytes

    def verify(self, reference_key: str, sample_image_bytes: bytes) -> MatchResult:
        # Size guard runs before spending an external call
        if len(sample_image_bytes) > self.max_image_bytes:
            raise InvalidInput(
                "Image too large. Please try again with a smaller image.",
                {'size_bytes': len(sample_image_bytes), 'max_bytes': self.max_image_bytes}
            )

        if self.comparator is None:
            raise VerificationUnavailable("Face comparison service is not configured")

        try:
            result = self.comparator.compare(reference_key, sample_image_bytes)
        except FaceComparisonError as e:
            logger.warning("Face comparison unavailable: %s", e)
            raise VerificationUnavailable(str(e))

        if isinstance(result, bool):
            result = MatchResult(result)
        return result
