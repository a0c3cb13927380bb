"""Table settings read from the environment."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field


class TableSettings(BaseModel):
    seat_count: int = Field(default=2, ge=2, le=10)
    deal_delay_ms: int = Field(default=500, ge=0)  # between hole cards
    board_delay_ms: int = Field(default=800, ge=0)  # between board slots
    cors_origins: list[str] = ["http://localhost:3000"]
    rate_limit_enabled: bool = True

    @property
    def deal_delay(self) -> float:
        return self.deal_delay_ms / 1000

    @property
    def board_delay(self) -> float:
        return self.board_delay_ms / 1000

    @classmethod
    def from_env(cls) -> TableSettings:
        origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")
        return cls(
            seat_count=int(os.getenv("SEAT_COUNT", "2")),
            deal_delay_ms=int(os.getenv("DEAL_DELAY_MS", "500")),
            board_delay_ms=int(os.getenv("BOARD_DELAY_MS", "800")),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            rate_limit_enabled=os.getenv("RATE_LIMIT_ENABLED", "1") != "0",
        )


settings = TableSettings.from_env()
