"""
Smoke tests to verify all critical dependencies are installed correctly.

These tests confirm that:
1. Python 3.11+ is installed (required for asyncio.timeout)
2. All core dependencies are importable
3. Async functionality is available
4. Project version is accessible

Run with: pytest tests/unit/test_smoke.py -v
"""

import sys

import pytest


class TestPythonVersion:
    """Verify Python version requirements."""

    def test_python_311_or_higher(self) -> None:
        """Python 3.11+ is required for asyncio.timeout support."""
        assert sys.version_info >= (3, 11), (
            f"Python 3.11+ required for asyncio.timeout, "
            f"got {sys.version_info.major}.{sys.version_info.minor}"
        )

    def test_asyncio_timeout_available(self) -> None:
        """asyncio.timeout must be available (Python 3.11+ feature)."""
        import asyncio

        assert hasattr(asyncio, "timeout"), "asyncio.timeout not available"


class TestAsyncHttp:
    """Verify async HTTP client."""

    def test_httpx_async_import(self) -> None:
        """httpx async client and mock transport must be importable."""
        from httpx import AsyncClient, MockTransport

        assert AsyncClient is not None
        assert MockTransport is not None


class TestStructuredLogging:
    """Verify structured logging."""

    def test_structlog_configuration(self) -> None:
        """structlog can be bound with context."""
        import structlog

        logger = structlog.get_logger()
        bound_logger = logger.bind(component="smoke", operation="test")
        assert bound_logger is not None


class TestSigning:
    """Verify cryptography for key material and signing."""

    def test_cryptography_curves(self) -> None:
        """All supported curves must be available."""
        from cryptography.hazmat.primitives.asymmetric import ec

        assert ec.ECDSA is not None
        for curve in (ec.SECP256K1, ec.SECP256R1, ec.SECP384R1, ec.SECP521R1):
            assert curve.name

    def test_cryptography_rsa_paddings(self) -> None:
        """PKCS#1 v1.5, PSS and OAEP paddings must be available."""
        from cryptography.hazmat.primitives.asymmetric import padding

        assert padding.PKCS1v15 is not None
        assert padding.PSS is not None
        assert padding.OAEP is not None


class TestPropertyBasedTesting:
    """Verify hypothesis for encoding invariant testing."""

    def test_hypothesis_import(self) -> None:
        """hypothesis must be importable."""
        from hypothesis import given, strategies

        assert given is not None
        assert strategies is not None


class TestProjectVersion:
    """Verify project metadata is accessible."""

    def test_version_accessible(self, project_version: str) -> None:
        """Project version must be accessible from the package."""
        assert isinstance(project_version, str)
        assert len(project_version) > 0

    def test_version_format(self, project_version: str) -> None:
        """Version must be in semver format."""
        parts = project_version.split(".")
        assert len(parts) >= 2, f"Version must be semver format, got {project_version}"


class TestAsyncCapabilities:
    """Verify async/await functionality."""

    @pytest.mark.asyncio
    async def test_async_function_runs(self) -> None:
        """Basic async function execution must work."""
        import asyncio

        result = await asyncio.sleep(0, result="success")
        assert result == "success"

    @pytest.mark.asyncio
    async def test_timeout_cancels(self) -> None:
        """asyncio.timeout must cancel slow work."""
        import asyncio

        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.01):
                await asyncio.sleep(1)
