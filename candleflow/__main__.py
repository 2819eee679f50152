"""Run the candle aggregation service: python -m candleflow"""

from candleflow.query.api.main import main

if __name__ == "__main__":
    main()
