# src/core/models/request.py

from pydantic import BaseModel, Field, ConfigDict

class SnapshotComputationRequest(BaseModel):
    """
    Represents the input payload for a stateless ledger computation.
    """
    # Raw dicts so one malformed record is reported instead of failing the whole request
    transactions: list[dict] = Field(
        ...,
        description="BUY/SELL transactions (raw dictionaries), any number of scopes, any order."
    )

    model_config = ConfigDict(
        json_schema_extra = {
            "example": {
                "transactions": [
                    {
                        "transaction_id": "buy_001",
                        "account_id": "ACC001",
                        "instrument_id": "AAPL",
                        "transaction_type": "BUY",
                        "transaction_date": "2024-01-02T15:30:00Z",
                        "quantity": 10,
                        "price": 100,
                        "commission": 5,
                        "stop_loss_price": 90,
                        "take_profit_price": 130
                    },
                    {
                        "transaction_id": "sell_001",
                        "account_id": "ACC001",
                        "instrument_id": "AAPL",
                        "transaction_type": "SELL",
                        "transaction_date": "2024-02-01T15:30:00Z",
                        "quantity": 10,
                        "price": 120,
                        "commission": 3
                    }
                ]
            }
        },
        extra='ignore'
    )
