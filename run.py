from __future__ import annotations
import os
from app import create_app

def main() -> None:
    flask_app = create_app()

    # log the mounted routes once at startup
    for rule in sorted(flask_app.url_map.iter_rules(), key=lambda r: r.rule):
        methods = ",".join(sorted(rule.methods - {"HEAD", "OPTIONS"}))
        flask_app.logger.info("%-6s %s", methods, rule.rule)

    flask_app.logger.info("Booking API using %s", flask_app.config["SQLALCHEMY_DATABASE_URI"])
    debug_enabled = os.environ.get("FLASK_DEBUG", "0") in {"1", "true", "True"}
    flask_app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)), debug=debug_enabled)

if __name__ == "__main__":
    main()
