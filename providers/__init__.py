# Remote service adapters and shared HTTP/logging helpers.
