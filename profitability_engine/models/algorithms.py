from pydantic import BaseModel, Field


class AlgorithmCatalogEntry(BaseModel):
    """Known catalog algorithm and how it maps onto the payout provider."""

    key: str = Field(..., description="Catalog algorithm key")
    name: str = Field(..., description="Display name")
    unit: str = Field(..., description="Default hashrate unit shown in the catalog")
    efficiency_unit: str = Field(..., description="Default efficiency unit")
    provider_key: str | None = Field(
        None, description="Payout provider key override (NiceHash naming)"
    )


def _entry(key: str, name: str, unit: str, efficiency_unit: str, provider_key: str | None = None):
    return AlgorithmCatalogEntry(
        key=key, name=name, unit=unit, efficiency_unit=efficiency_unit, provider_key=provider_key
    )


ALGORITHM_CATALOG: list[AlgorithmCatalogEntry] = [
    _entry("sha256", "SHA-256", "TH/s", "J/TH", "SHA256"),
    _entry("sha256asicboost", "SHA-256 AsicBoost", "TH/s", "J/TH", "SHA256ASICBOOST"),
    _entry("scrypt", "Scrypt", "MH/s", "J/MH", "SCRYPT"),
    _entry("x11", "X11", "GH/s", "J/GH", "X11"),
    _entry("qubit", "Qubit", "MH/s", "J/MH", "QUBIT"),
    _entry("daggerhashimoto", "DaggerHashimoto", "MH/s", "J/MH", "DAGGERHASHIMOTO"),
    # legacy seed key for the same NiceHash market
    _entry("ethash", "Ethash (DaggerHashimoto)", "MH/s", "J/MH", "DAGGERHASHIMOTO"),
    _entry("etchash", "Etchash", "MH/s", "J/MH", "ETCHASH"),
    _entry("kawpow", "KawPow", "MH/s", "J/MH", "KAWPOW"),
    _entry("autolykos", "Autolykos", "MH/s", "J/MH", "AUTOLYKOS"),
    _entry("autolykos2", "Autolykos2", "MH/s", "J/MH", "AUTOLYKOS"),
    _entry("octopus", "Octopus", "MH/s", "J/MH", "OCTOPUS"),
    _entry("kheavyhash", "kHeavyHash", "GH/s", "J/GH", "KHEAVYHASH"),
    _entry("equihash", "Equihash", "kSol/s", "J/kSol", "EQUIHASH"),
    _entry("zhash", "ZHash", "kSol/s", "J/kSol", "ZHASH"),
    _entry("beamv3", "BeamV3", "Sol/s", "J/Sol", "BEAMV3"),
    _entry("randomxmonero", "RandomX (Monero)", "kH/s", "J/kH", "RANDOMXMONERO"),
    _entry("randomx", "RandomX", "kH/s", "J/kH", "RANDOMXMONERO"),
    _entry("verushash", "VerusHash", "MH/s", "J/MH", "VERUSHASH"),
    _entry("eaglesong", "EagleSong", "TH/s", "J/TH", "EAGLESONG"),
    _entry("alephium", "Alephium", "GH/s", "J/GH", "ALEPHIUM"),
    _entry("fishhash", "FishHash", "H/s", "J/H", "FISHHASH"),
    _entry("neoscrypt", "NeoScrypt", "MH/s", "J/MH", "NEOSCRYPT"),
    _entry("nexapow", "NexaPow", "MH/s", "J/MH", "NEXAPOW"),
    _entry("xelishashv2", "XelisHashV2", "H/s", "J/H", "XELISHASHV2"),
    # not traded on NiceHash; kept so the catalog can display them
    _entry("blake3", "Blake3", "GH/s", "J/GH"),
    _entry("cryptonight", "CryptoNight", "kH/s", "J/kH"),
    _entry("groestl", "Groestl", "MH/s", "J/MH"),
    _entry("sha3", "SHA-3", "GH/s", "J/GH"),
    _entry("skein", "Skein", "GH/s", "J/GH"),
    _entry("lyra2rev3", "Lyra2REv3", "MH/s", "J/MH"),
]


def get_algorithm_by_key(key: str) -> AlgorithmCatalogEntry | None:
    """Retrieve a catalog algorithm by its (case-insensitive) key."""
    wanted = (key or "").strip().lower()
    for entry in ALGORITHM_CATALOG:
        if entry.key == wanted:
            return entry
    return None
