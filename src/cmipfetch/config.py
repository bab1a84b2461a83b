from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    debug: bool = Field(default=False, alias="CMIPFETCH_DEBUG")

    # Storage root. Per-domain download/, omfile/ and archive/ directories live below it
    data_dir: Path = Field(default=Path("data"), alias="CMIPFETCH_DATA_DIR")

    # ESGF THREDDS file servers, fastest first
    mirrors: List[str] = Field(
        default=[
            "https://esgf3.dkrz.de/thredds/fileServer/cmip6/",
            "https://esgf.ceda.ac.uk/thredds/fileServer/esg_cmip6/",
            "https://esgf-data1.llnl.gov/thredds/fileServer/css03_data/CMIP6/",
            "https://esgf-data04.diasjp.net/thredds/fileServer/esg_dataroot/CMIP6/",
            "https://esg.lasg.ac.cn/thredds/fileServer/esg_dataroot/CMIP6/",
        ],
        alias="CMIPFETCH_MIRRORS",
    )

    # HTTP
    connect_timeout: float = Field(default=30.0, alias="CMIPFETCH_CONNECT_TIMEOUT")
    read_timeout: float = Field(default=3 * 3600.0, alias="CMIPFETCH_READ_TIMEOUT")
    download_chunk_size: int = 1024 * 1024
    max_concurrent_downloads: int = Field(default=4, alias="CMIPFETCH_MAX_DOWNLOADS")

    # Jobs. One yearly series for ~6k locations needs around 200 MB
    max_workers: int = Field(default=2, alias="CMIPFETCH_MAX_WORKERS")
    start_year: int = Field(default=1950, alias="CMIPFETCH_START_YEAR")
    end_year: int = Field(default=2014, alias="CMIPFETCH_END_YEAR")

    # Store layout
    yearly_chunk_locations: int = 6
    elevation_chunk: int = 20

    # Elevation
    land_fraction_threshold: float = 0.5
    elevation_sea_value: float = -999.0

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
        "populate_by_name": True,
    }


settings = Settings()
