"""
로깅 설정

애플리케이션 시작 시 한 번 호출하여 루트 로거를 구성합니다.
각 모듈은 ``logging.getLogger(__name__)``으로 자신의 로거를 사용합니다.
"""

import logging
import sys

from catalog.core.config import Settings

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    """
    설정의 log_level로 표준 로깅을 구성합니다.

    Args:
        settings: 애플리케이션 설정 객체
    """
    logging.basicConfig(
        level=settings.log_level.upper(),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # 서드파티 라이브러리의 과도한 로그 억제
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("azure.core.pipeline.policies.http_logging_policy").setLevel(
        logging.WARNING
    )
