from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- Storage ---
    storage_path: Path = Path("LifeMap/storage/lifemap.db")

    # --- Insight Gateway (Gemini) ---
    model_name: str = "gemini-2.5-flash"
    llm_temperature: Optional[float] = 0.3  # None lets the model pick its default
    checklist_placeholder: str = "데이터를 불러오는 중 오류가 발생했습니다."

    # --- Attachments ---
    attachment_max_bytes: int = 10 * 1024 * 1024

    # --- Manual entry defaults ---
    default_category: str = "대외활동"
    default_emotion: str = "즐거움"
    default_satisfaction: int = 5

    # --- Import defaults (file / URL extraction) ---
    import_default_title: str = "제목 없음"
    import_default_category: str = "대외활동"
    import_default_emotion: str = "즐거움"
    import_default_satisfaction: int = 5

    # --- Relationship graph layout ---
    layout_width: float = 800.0
    layout_height: float = 400.0
    layout_link_distance: float = 100.0
    layout_charge_strength: float = -300.0 # Negative = repulsive
    layout_collide_radius: float = 50.0
    layout_alpha_min: float = 0.001
    layout_velocity_decay: float = 0.4
    layout_drag_alpha_target: float = 0.3
    layout_frame_interval_s: float = 1 / 60

    model_config = SettingsConfigDict(
        env_prefix="LIFEMAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra='ignore',
        protected_namespaces=(),
    )
