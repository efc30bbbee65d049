"""
FastAPI Application - Main web application setup
===============================================

Creates the HTTP API around the conversation handler. The rule set is
loaded once here and stored on ``app.state``; every request reads it.
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from core.config import Config, load_config
from core.logging import get_logger
from llm.base import BaseLLMProvider
from llm.factory import create_llm_provider
from rules.engine import RuleSet
from rules.loader import load_rules
from services.conversation import ConversationHandler

logger = get_logger("web.app")


def create_app(
    config: Optional[Config] = None,
    rule_set: Optional[RuleSet] = None,
    llm: Optional[BaseLLMProvider] = None,
    debug: bool = False,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application configuration (loaded if omitted)
        rule_set: Intent rules (loaded from intents.csv if omitted)
        llm: Fallback provider (built from config if omitted)
        debug: Enable debug mode

    Returns:
        Configured FastAPI application

    Raises:
        ConfigError: If the intents file cannot be found
    """
    if config is None:
        config = load_config()

    debug = debug or config.debug or config.web.debug

    if rule_set is None:
        rule_set = load_rules(config)

    if llm is None:
        llm = create_llm_provider(config)

    app = FastAPI(
        title=config.app_name,
        description="Bilingual intent matching chat API",
        version=config.version,
        debug=debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.rule_set = rule_set
    app.state.conversation = ConversationHandler(rule_set, config, llm=llm)

    from .routes import router as main_router
    app.include_router(main_router, prefix="")

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc) if debug else "An error occurred"}
        )

    logger.info(f"Web application created with {len(rule_set)} intent rules")

    return app


def run_app(
    host: Optional[str] = None,
    port: Optional[int] = None,
    debug: bool = False,
    config: Optional[Config] = None,
    rule_set: Optional[RuleSet] = None,
) -> None:
    """
    Run the web application server.

    Args:
        host: Host address to bind (config value if omitted)
        port: Port to listen on (config value if omitted)
        debug: Enable debug mode
        config: Application configuration
        rule_set: Preloaded intent rules
    """
    if config is None:
        config = load_config()

    app = create_app(config=config, rule_set=rule_set, debug=debug)

    host = host or config.web.host
    port = port or config.web.port
    logger.info(f"Starting web server on {host}:{port}")

    import uvicorn
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="debug" if debug else "info"
    )
