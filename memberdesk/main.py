from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from strawberry.fastapi import GraphQLRouter

from memberdesk.core import settings
from memberdesk.core.logging_config import get_logger, setup_logging
from memberdesk.db.postgresql import create_tables
from memberdesk.graphql.context import build_context
from memberdesk.graphql.schema import schema

setup_logging()
logger = get_logger("main")

settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    logger.info(f"Member desk started ({settings.ENVIRONMENT})")
    yield


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-access-token"],
)

graphql_app = GraphQLRouter(
    schema=schema,
    context_getter=build_context,
    graphql_ide="graphiql" if settings.ENVIRONMENT != "production" else None,
    multipart_uploads_enabled=True,
)
app.include_router(graphql_app, prefix="/graphql")

app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")
