"""IoT telemetry analytics and alerting service."""
