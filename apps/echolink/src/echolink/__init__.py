"""echolink: frame-loop friendly WebSocket snapshot link."""
