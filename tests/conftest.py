"""Shared fixtures for all tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest


@pytest.fixture()
def tmp_data_dir(tmp_path: Path):
    """Provide a temporary data directory for personal-data storage."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture()
def sample_payload():
    """A small dataset: 3 súmulas, 4 OJs in 3 organ groups, 2 precedentes."""
    return {
        "sumulas": [
            {
                "numero": "331",
                "titulo": "CONTRATO DE PRESTAÇÃO DE SERVIÇOS. LEGALIDADE",
                "texto": "A contratação de trabalhadores por empresa interposta é ilegal.",
                "cancelada": False,
            },
            {
                "numero": 85,
                "titulo": "COMPENSAÇÃO DE JORNADA",
                "texto": "A compensação de jornada deve ser ajustada por acordo individual escrito.",
                "cancelada": False,
            },
            {
                "numero": "310",
                "titulo": "SUBSTITUIÇÃO PROCESSUAL. SINDICATO",
                "texto": "Súmula cancelada.",
                "cancelada": True,
                "referencia": "Cancelada pela Res. 119/2003",
            },
        ],
        "ojs": {
            "sbdi1": [
                {"numero": "191", "titulo": "DONO DA OBRA", "texto": "Empreitada de construção civil."},
                {"numero": "270", "titulo": "PDV", "texto": "Adesão a plano de demissão voluntária."},
            ],
            "sbdi2": [
                {"numero": "158", "titulo": "AÇÃO RESCISÓRIA", "texto": "Colusão entre as partes."},
            ],
            "sdc": [
                {"numero": "5", "titulo": "DISSÍDIO COLETIVO", "texto": "Pessoa jurídica de direito público."},
            ],
        },
        "precedentes_normativos": [
            {"numero": "119", "titulo": "CONTRIBUIÇÕES SINDICAIS", "texto": "Liberdade de associação."},
            {"numero": "2", "titulo": "ABONO PECUNIÁRIO", "texto": "Cancelado.", "cancelada": True},
        ],
    }


@pytest.fixture()
def dataset_file(tmp_path: Path, sample_payload):
    """Write sample_payload to a JSON file and return its path."""
    path = tmp_path / "dataset.json"
    path.write_text(json.dumps(sample_payload, ensure_ascii=False), encoding="utf-8")
    return path
