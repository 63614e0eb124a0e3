"""
Dashboard Builder 主入口：启动 FastAPI 后端服务。
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dashboard_core import api
from dashboard_core.config_loader import AppConfig, load_config
from dashboard_core.persistence import DashboardRepository

# 日志配置
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan 事件处理：关闭时释放数据库。"""
    yield
    logger.info("正在关闭...")
    app.state.repository.close()


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """创建并配置 FastAPI 应用。"""
    app = FastAPI(
        title="Dashboard Builder API",
        description="Dashboard document editing, agent tool calls and rendering",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── 初始化核心组件 ────────────────────────────────
    if config is None:
        logger.info("正在加载配置...")
        config = load_config()

    repository = DashboardRepository(config.db_path)
    session = api.BuilderSession(config, repository)

    api.init_api(session)
    app.include_router(api.router)

    app.state.config = config
    app.state.repository = repository
    app.state.session = session

    return app


def main():
    """主入口。"""
    config = load_config()
    port = int(sys.argv[1]) if len(sys.argv) > 1 else config.server.port

    logger.info(f"启动 Dashboard Builder 后端 (port={port})...")

    app = create_app(config)

    uvicorn.run(
        app,
        host=config.server.host,
        port=port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
