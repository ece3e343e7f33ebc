"""
logship: structured logging with asynchronous Datadog shipping.

    from logship.logging import LoggingPipeline

    pipeline = LoggingPipeline.from_settings()
    pipeline.initialize()          # True when LOGSHIP_DATADOG_API_KEY is set
    log = pipeline.get_logger("auth")
    log.info("user {id} logged in", 42)
    pipeline.close()               # waits for pending deliveries
"""

__version__ = "0.1.0"
