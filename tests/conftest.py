# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""Pytest configuration for unit and integration tests."""

import pytest


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--device",
        action="store",
        default=None,
        help="Bluetooth address or serial port of an EV3 brick "
             "(e.g., 00:16:53:12:34:56 or /dev/rfcomm0)",
    )
    parser.addoption(
        "--allow-motion",
        action="store_true",
        default=False,
        help="Run integration tests that drive motors on port B and C",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: tests that need a real EV3 brick (--device)")


@pytest.fixture(scope="session")
def device_address(request):
    """Get the brick address from the command line."""
    address = request.config.getoption("--device")
    if not address:
        pytest.skip("No EV3 brick given (use --device)")
    return address


@pytest.fixture(scope="session")
def allow_motion(request):
    return request.config.getoption("--allow-motion")


@pytest.fixture
def brick(device_address):
    """
    Open a fresh session to the brick.

    Function-scoped so a test that breaks its session does not affect the
    next one.
    """
    from ev3_protocol import Brick

    brick = Brick.open(device_address, timeout=5.0)
    yield brick
    brick.close()
