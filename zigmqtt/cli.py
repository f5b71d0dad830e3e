from __future__ import annotations

import argparse
import os

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(prog="zigmqtt-server", description="Run the zigmqtt gateway")
    parser.add_argument("--host", default=os.environ.get("ZIGMQTT_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.environ.get("ZIGMQTT_PORT", "8080")))
    parser.add_argument("--log-level", default=os.environ.get("ZIGMQTT_LOG_LEVEL", "info").lower())
    parser.add_argument("--config", default=None, help="JSON adapter config (sets ZIGMQTT_CONFIG)")
    args = parser.parse_args()

    if args.config:
        os.environ["ZIGMQTT_CONFIG"] = args.config

    # One worker: the adapter keeps device state in process memory.
    uvicorn.run(
        "zigmqtt.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        workers=1,
    )


if __name__ == "__main__":
    main()
