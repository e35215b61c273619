"""wakabeat — editor activity heartbeats for WakaTime."""

__version__ = "0.2.0"
