from .mock_visa import MockPowerSupplyInstrument, MockResourceManager

__all__ = ["MockPowerSupplyInstrument", "MockResourceManager"]
