"""
Driver Factory - WebDriver creation for live tree access.

Provides a single interface to create the Chrome WebDriver that
BrowserTree reads from, with optional headless mode, persistent
profile, SOCKS5 proxy and page-load/script timeouts.
"""

from typing import Optional
import re

from selenium import webdriver
from selenium.webdriver.chrome.options import Options as ChromeOptions

from forkline.core.config import EngineConfig

# Type alias for driver - can be extended to support other browsers
WebDriverType = webdriver.Chrome

_SOCKS5_RE = re.compile(r"^(?:socks5://)?[A-Za-z0-9.\-]+:\d{1,5}$")


def is_valid_socks5(proxy: str) -> bool:
    """Check a ``host:port`` (optionally ``socks5://host:port``) proxy string."""
    if not proxy or not _SOCKS5_RE.match(proxy):
        return False
    port = int(proxy.rsplit(":", 1)[1])
    return 0 < port < 65536


def create_driver(
    headless: bool = True,
    profile_path: Optional[str] = None,
    socks5_proxy: Optional[str] = None,
    page_load_timeout: int = 30,
    script_timeout: int = 30,
) -> WebDriverType:
    """
    Create a Chrome WebDriver instance.

    Args:
        headless: Run browser in headless mode
        profile_path: Path to browser profile for session persistence (logins)
        socks5_proxy: ``host:port`` of a SOCKS5 proxy
        page_load_timeout: Seconds before ``driver.get`` gives up
        script_timeout: Seconds before an async script gives up

    Raises:
        ValueError: if ``socks5_proxy`` is not ``host:port``

    Example:
        >>> driver = create_driver(headless=True)
        >>> driver.get("https://example.com")
    """
    options = ChromeOptions()

    if headless:
        options.add_argument("--headless=new")

    if profile_path:
        options.add_argument(f"--user-data-dir={profile_path}")

    if socks5_proxy:
        if not is_valid_socks5(socks5_proxy):
            raise ValueError(f"Invalid SOCKS5 proxy: {socks5_proxy!r} (expected host:port)")
        host_port = socks5_proxy.split("://", 1)[-1]
        options.add_argument(f"--proxy-server=socks5://{host_port}")
        # Resolve DNS through the proxy as well
        host = host_port.rsplit(":", 1)[0]
        options.add_argument(f"--host-resolver-rules=MAP * ~NOTFOUND , EXCLUDE {host}")

    # Common stability options
    options.add_argument("--disable-extensions")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--disable-gpu")
    options.add_argument("--window-size=1920,1080")

    driver = webdriver.Chrome(options=options)
    driver.set_page_load_timeout(page_load_timeout)
    driver.set_script_timeout(script_timeout)
    return driver


def create_driver_from_config(config: EngineConfig) -> WebDriverType:
    """Create a driver from the browser fields of an EngineConfig."""
    return create_driver(
        headless=config.headless,
        profile_path=config.profile_path,
        socks5_proxy=config.socks5_proxy,
        page_load_timeout=config.page_load_timeout,
        script_timeout=config.script_timeout,
    )
