"""
Test Fixtures

Common test classes used across test modules
"""

import threading
import time


class MockClient:
    """Test client configured from a params mapping"""

    def __init__(self, config):
        self.config = dict(config)

    def get_config(self, key):
        return self.config.get(key)

    @property
    def base_url(self):
        return f"http://127.0.0.1:8124/v1/{self.config.get('subdomain')}"


class Client:
    """Plain client registered directly as an instance"""

    def __init__(self, base_url):
        self.base_url = base_url


class FailingClient:
    """Client whose constructor always raises"""

    def __init__(self, config):
        raise ValueError("cannot connect")


class CountingClient:
    """Slow client counting how many times it was constructed"""

    _lock = threading.Lock()
    created = 0

    def __init__(self, config):
        time.sleep(float(config.get("delay", 0.05)))
        with CountingClient._lock:
            CountingClient.created += 1
        self.config = dict(config)

    @classmethod
    def reset(cls):
        with cls._lock:
            cls.created = 0


NOT_CALLABLE = "not a constructor"


class BrokenCache:
    """Cache adapter whose every call fails"""

    def __init__(self):
        self.fetch_calls = 0
        self.store_calls = 0

    def fetch(self, key):
        self.fetch_calls += 1
        raise ConnectionError("cache is down")

    def store(self, key, data, ttl):
        self.store_calls += 1
        raise ConnectionError("cache is down")


class RecordingCache:
    """Dict-backed cache adapter remembering the ttl it was given"""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    def fetch(self, key):
        return self.data.get(key)

    def store(self, key, data, ttl):
        self.data[key] = data
        self.ttls[key] = ttl
