#!/usr/bin/env python
"""
招聘流程编排引擎启动脚本

用法:
    python run.py                    # 默认启动 (127.0.0.1:8000)
    python run.py -p 8080            # 指定端口
    python run.py --host 0.0.0.0     # 允许外网访问
    python run.py --reload           # 开启热重载
    python run.py --init-db          # 只建表，不启动服务

变更事件总线在进程内，只支持单进程运行，因此没有 --workers 参数
"""
import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger

ROOT_DIR = Path(__file__).parent
sys.path.insert(0, str(ROOT_DIR))


def parse_args():
    parser = argparse.ArgumentParser(
        description="招聘流程编排引擎启动脚本",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-p", "--port", type=int, default=8000, help="服务端口 (默认: 8000)")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="服务地址 (默认: 127.0.0.1)")
    parser.add_argument("--reload", action="store_true", help="开启热重载 (开发模式)")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    parser.add_argument("--init-db", action="store_true", help="创建数据表后退出")
    return parser.parse_args()


def check_environment():
    """检查数据目录与 .env，缺失时给出提示"""
    data_dir = ROOT_DIR / "data"
    if not data_dir.exists():
        data_dir.mkdir(parents=True)
        logger.info("数据目录已创建: {}", data_dir)
    if not (ROOT_DIR / ".env").exists():
        logger.warning("未找到 .env 文件，将使用默认配置（LLM 与邮件未配置）")


async def create_tables():
    from app.core.database import init_db, close_db

    await init_db()
    await close_db()


def main():
    args = parse_args()
    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())
    check_environment()

    if args.init_db:
        asyncio.run(create_tables())
        logger.info("数据表已创建")
        return

    logger.info("启动服务: http://{}:{}  文档: http://{}:{}/docs", args.host, args.port, args.host, args.port)

    import uvicorn
    try:
        uvicorn.run(
            "app.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=args.log_level,
        )
    except KeyboardInterrupt:
        logger.info("服务已停止")


if __name__ == "__main__":
    main()
