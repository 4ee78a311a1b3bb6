import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tictactoe_server.api import router as api_router
from tictactoe_server.config import Settings
from tictactoe_server.database import init_db, make_engine, make_session_factory
from tictactoe_server.exceptions import OracleError, TicTacToeError
from tictactoe_server.oracle import HttpMoveOracle, LLMMoveOracle, MoveOracle
from tictactoe_server.stats import StatsService
from tictactoe_server.ws_handler import router as ws_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    oracle: MoveOracle | None = None,
    llm_oracle: LLMMoveOracle | None = None,
) -> FastAPI:
    """Build the application.

    ``oracle`` is what matches played over the WebSocket ask for moves;
    ``llm_oracle`` backs the ``/api/ai/move`` endpoint. Both default to
    what the settings describe.
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = make_engine(settings.database_url)
    stats = StatsService(make_session_factory(engine))

    if llm_oracle is None:
        llm_oracle = LLMMoveOracle(api_key=settings.openai_api_key, model=settings.openai_model)
    if oracle is None:
        if settings.oracle_url:
            oracle = HttpMoveOracle(settings.oracle_url, timeout=settings.oracle_timeout)
        else:
            oracle = llm_oracle

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(engine)
        logger.info("Tic-tac-toe server started")
        yield
        engine.dispose()

    app = FastAPI(title="Tic-Tac-Toe Server", lifespan=lifespan)
    app.state.settings = settings
    app.state.stats = stats
    app.state.oracle = oracle
    app.state.llm_oracle = llm_oracle

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TicTacToeError)
    async def handle_game_error(request: Request, exc: TicTacToeError):
        key = "error" if isinstance(exc, OracleError) else "message"
        return JSONResponse(status_code=exc.status_code, content={key: exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        key = "error" if request.url.path.startswith("/api/ai/") else "message"
        return JSONResponse(status_code=400, content={key: f"Missing or invalid fields: {detail}"})

    app.include_router(ws_router)
    app.include_router(api_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
