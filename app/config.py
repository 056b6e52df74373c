import os
import yaml
from pydantic_settings import BaseSettings
from typing import Optional, List


# YAML 파일 로더 함수
def load_yaml_config(file_path: str) -> dict:
    if not os.path.exists(file_path):
        return {}
    with open(file_path, "r", encoding="utf-8") as file:
        return yaml.safe_load(file) or {}


class AdminConfig(BaseSettings):
    emails: List[str] = []


class AppConfig(BaseSettings):
    database: dict = {"url": "sqlite:///./nightslip.db"}
    auth: dict = {}
    firebase: dict = {}
    admin: AdminConfig = AdminConfig()
    export: dict = {}
    cors: dict = {}
    logging: dict = {}

    @classmethod
    def from_yaml(cls, file_path: str):
        config_data = load_yaml_config(file_path)

        # admin 섹션은 AdminConfig로 변환
        admin_data = config_data.get('admin')
        if admin_data:
            config_data['admin'] = AdminConfig(**admin_data)

        return cls(**config_data)


# 기본 YAML 설정 로드 (NIGHTSLIP_CONFIG 환경변수로 경로 변경 가능)
CONFIG_PATH = os.environ.get("NIGHTSLIP_CONFIG", "config.yaml")
config = AppConfig.from_yaml(CONFIG_PATH)
