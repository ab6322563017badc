"""Shared pytest fixtures for autoprice."""

import asyncio
from datetime import date
from pathlib import Path

import pytest

from autoprice.core.config import (
    AutopriceConfig,
    FetchConfig,
    SourceConfig,
    StorageConfig,
)
from autoprice.core.models import (
    CanonicalVehicleRow,
    ResponseType,
    SourceKind,
)
from autoprice.normalize import FuelKind, format_price
from autoprice.storage import IndexMaintainer, SnapshotStore


def make_row(
    model: str = "Golf",
    price: float = 1_750_000,
    brand: str = "Volkswagen",
    trim: str = "Life",
    engine: str = "1.5 eTSI 150 PS",
    **extra,
) -> CanonicalVehicleRow:
    return CanonicalVehicleRow(
        model=model,
        trim=trim,
        engine=engine,
        transmission="DSG",
        fuel=extra.pop("fuel", FuelKind.MILD_HYBRID),
        price_raw=format_price(price),
        price_numeric=price,
        brand=brand,
        **extra,
    )


@pytest.fixture
def row_factory():
    return make_row


# --- Config ---


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def test_sources() -> tuple[SourceConfig, ...]:
    return (
        SourceConfig(
            id="volkswagen",
            name="Volkswagen",
            url="https://vw.example.com/fiyatlar.json",
            parser=SourceKind.VOLKSWAGEN,
        ),
        SourceConfig(
            id="toyota",
            name="Toyota",
            url="https://toyota.example.com/fiyat.xml",
            parser=SourceKind.TOYOTA,
            response_type=ResponseType.XML,
        ),
        SourceConfig(
            id="renault",
            name="Renault",
            url="https://renault.example.com/CatFiyatData",
            parser=SourceKind.RENAULT,
        ),
    )


@pytest.fixture
def config(data_dir: Path, test_sources) -> AutopriceConfig:
    return AutopriceConfig(
        fetch=FetchConfig(rate_limit=100, request_timeout=5, max_retries=2),
        sources=test_sources,
        storage=StorageConfig(data_dir=str(data_dir)),
    )


# --- Storage ---


@pytest.fixture
def snapshots(data_dir: Path) -> SnapshotStore:
    return SnapshotStore(data_dir)


@pytest.fixture
def index(snapshots: SnapshotStore) -> IndexMaintainer:
    return IndexMaintainer(snapshots)


async def _seed(snapshots, index, brand_id, brand_name, days_rows) -> None:
    for day, rows in days_rows.items():
        snapshots.write(brand_id, brand_name, day, rows)
        await index.record_date(brand_id, brand_name, day, len(rows))


@pytest.fixture
def golf_history() -> dict[date, list[CanonicalVehicleRow]]:
    """Three days of Volkswagen rows; the Golf Life drops then rises."""
    polo = make_row("Polo", 900_000, trim="Impression", engine="1.0 TSI 95 PS")
    return {
        date(2024, 5, 1): [make_row(price=1_000_000), polo],
        date(2024, 5, 2): [make_row(price=950_000), polo],
        date(2024, 5, 3): [make_row(price=1_050_000)],
    }


@pytest.fixture
def seeded(snapshots, index, golf_history) -> IndexMaintainer:
    """Data dir holding the Golf history under brand id ``volkswagen``."""
    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(
            _seed(snapshots, index, "volkswagen", "Volkswagen", golf_history)
        )
    finally:
        loop.close()
    return index


# --- Upstream payloads ---


@pytest.fixture
def volkswagen_payload() -> dict:
    return {
        "Data": {
            "FiyatBilgisi": {
                "Arac": [
                    {
                        "AracXML": {
                            "PriceData": {
                                "-ModelName": "Golf",
                                "SubList": {
                                    "Item": [
                                        {
                                            "SubItem": [
                                                {"-Title": "Donanım", "-Value": "Life"},
                                                {"-Title": "Motor", "-Value": "1.5 eTSI 150 PS"},
                                                {"-Title": "Şanzıman", "-Value": "DSG"},
                                                {"-Title": "Noter Dahil Anahtar Teslim Fiyat", "-Value": "1.760.000 TL"},
                                                {"-Title": "Anahtar Teslim Fiyat", "-Value": "1.750.000 TL"},
                                                {"-Title": "Model Yılı", "-Value": "2024"},
                                                {"-Title": "ÖTV Oranı", "-Value": "%80"},
                                            ]
                                        },
                                        {
                                            "SubItem": [
                                                {"-Title": "Donanım", "-Value": "Style"},
                                                {"-Title": "Motor", "-Value": "2.0 TDI 150 PS"},
                                                {"-Title": "Şanzıman", "-Value": "DSG"},
                                                {"-Title": "Anahtar Teslim Fiyat", "-Value": "2.100.000,50 TL"},
                                            ]
                                        },
                                        {
                                            "SubItem": [
                                                {"-Title": "Donanım", "-Value": "R-Line"},
                                                {"-Title": "Motor", "-Value": "1.5 eTSI 150 PS"},
                                            ]
                                        },
                                    ]
                                },
                            }
                        }
                    },
                    {
                        "AracXML": {
                            "PriceData": {
                                "-ModelName": "ID.4",
                                "SubList": {
                                    "Item": {
                                        "SubItem": [
                                            {"-Title": "Donanım", "-Value": "Pro"},
                                            {"-Title": "Motor", "-Value": "77 kWh 286 PS"},
                                            {"-Title": "Anahtar Teslim Fiyat", "-Value": "2.950.000 TL"},
                                        ]
                                    }
                                },
                            }
                        }
                    },
                ]
            }
        }
    }


@pytest.fixture
def skoda_payload() -> dict:
    return {
        "pageProps": {
            "priceListSections": [
                {
                    "items": [
                        {
                            "title": "Octavia",
                            "modelPricesTable": {
                                "data": [
                                    {
                                        "hardware": {"value": "Premium 1.5 TSI 150 PS DSG"},
                                        "currentPrice": {"value": "1.650.000 TL"},
                                        "listPrice": {"value": "1.700.000 TL"},
                                    },
                                    {
                                        "hardware": {"value": "Elite 1.0 TSI 115 PS Manuel"},
                                        "currentPrice": {"value": ""},
                                    },
                                ]
                            },
                        },
                        {
                            "title": "Enyaq",
                            "modelPricesTable": {
                                "data": [
                                    {
                                        "hardware": {"value": "85 e-Sportline"},
                                        "currentPrice": {"value": 2500000},
                                    }
                                ]
                            },
                        },
                    ]
                }
            ]
        }
    }


@pytest.fixture
def renault_payload() -> dict:
    return {
        "results": [
            {
                "ModelAdi": "Clio",
                "EkipmanAdi": "Evolution",
                "VersiyonAdi": "1.0 TCe 90",
                "VitesTipi": "Manuel",
                "YakitTipi": "Benzin",
                "AntesFiyati": 1250000,
                "VergisizFiyat": "800000.5",
                "OtvOrani": "%60",
                "ModelYili": "2024",
            },
            {
                "ModelAdi": "Megane",
                "EkipmanAdi": "Techno",
                "VersiyonAdi": "1.3 TCe 140",
                "AntesFiyati": "not a number",
            },
            {
                "ModelAdi": "Austral",
                "EkipmanAdi": "",
                "VersiyonAdi": "E-Tech full hybrid 200",
                "VitesTipi": "Otomatik",
                "AntesFiyati": "2100000",
                "VergisizFiyat": "n/a",
            },
        ]
    }


@pytest.fixture
def toyota_payload() -> dict:
    """Toyota feed as xmltodict decodes it."""
    return {
        "Data": {
            "Model": [
                {
                    "ModelFiyat": [
                        {
                            "Durum": "1",
                            "Govde": "Corolla",
                            "Model": "Dream",
                            "MotorHacmi": "1.5",
                            "MotorTipi": "Benzin",
                            "VitesTipi": "Multidrive S",
                            "KampanyaliFiyati2": None,
                            "KampanyaliFiyati1": None,
                            "ListeFiyati2": None,
                            "ListeFiyati1": "850.000 TL",
                        },
                        {
                            "Durum": "0",
                            "Govde": "Corolla",
                            "Model": "Flame",
                            "MotorHacmi": "1.5",
                            "ListeFiyati1": "900.000 TL",
                        },
                        {
                            "Durum": "1",
                            "Govde": "Corolla",
                            "Model": "%80 ÖTV oranına tabidir",
                            "ListeFiyati1": "1 TL",
                        },
                    ]
                },
                {
                    "ModelFiyat": {
                        "Durum": "1",
                        "Govde": "C-HR",
                        "Model": "Passion X",
                        "MotorHacmi": "1.8 Hybrid",
                        "MotorTipi": "Hibrit",
                        "VitesTipi": "e-CVT",
                        "KampanyaliFiyati2": "1.450.000 TL",
                        "ListeFiyati1": "1.500.000 TL",
                    }
                },
            ]
        }
    }


TOYOTA_XML = """<?xml version="1.0" encoding="UTF-8"?>
<Data>
  <Model>
    <ModelFiyat>
      <Durum>1</Durum>
      <Govde>Corolla</Govde>
      <Model>Dream</Model>
      <MotorHacmi>1.5</MotorHacmi>
      <MotorTipi>Benzin</MotorTipi>
      <VitesTipi>Multidrive S</VitesTipi>
      <KampanyaliFiyati2/>
      <KampanyaliFiyati1/>
      <ListeFiyati2/>
      <ListeFiyati1>850.000 TL</ListeFiyati1>
    </ModelFiyat>
  </Model>
</Data>
"""


@pytest.fixture
def toyota_xml() -> str:
    return TOYOTA_XML


@pytest.fixture
def hyundai_payload() -> dict:
    return {
        "productList": [
            {
                "productName": "i20",
                "yearDetailList": [
                    {
                        "modelYear": "2024",
                        "priceDetailList": [
                            {
                                "trimName": "Jump",
                                "powertrainName": "1.4 MPI 100 PS Jump",
                                "transmission": "Otomatik",
                                "fuelName": "Benzin",
                                "price": 1300000,
                                "suggestedPrice": 1250000,
                            },
                            {
                                "trimName": "Style",
                                "powertrainName": "1.0 T-GDI Style",
                                "transmission": "DCT",
                                "fuelName": "Benzin",
                                "price": 1400000,
                                "suggestedPrice": 0,
                            },
                        ],
                    }
                ],
            }
        ]
    }


@pytest.fixture
def ford_payload() -> dict:
    return {
        "carPriceList": [
            {
                "modelName": "Puma",
                "entities": [
                    {
                        "series": "Titanium",
                        "engine": "1.0 EcoBoost 125 PS mHEV",
                        "gearbox": "Otomatik",
                        "fuelType": "Benzin",
                        "horsePower": "125",
                        "driveTrain": "4x2",
                        "campaignedTurnkeyPrice": 1650000,
                        "deliveredTurnkeyListPrice": 1700000,
                    },
                    {
                        "series": "ST-Line",
                        "engine": "1.0 EcoBoost 155 PS",
                        "campaignedTurnkeyPrice": None,
                        "deliveredTurnkeyListPrice": 1800000,
                    },
                ],
            }
        ]
    }
