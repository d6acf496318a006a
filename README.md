# marketsim

A simulated stock exchange that runs on its own virtual clock. It generates
companies, listed stocks, IPOs, investors and market makers, hands the
listed shares out to investors, and then, tick by tick, places and matches
market orders during trading hours, nudges every price, and records each
symbol's mid-price history in Redis. The whole state is saved to Redis
after every tick, and a small HTTP server shows metrics while the
simulation runs.

## Installation

```
pip install .
```

A Redis server must be reachable; the default URL is `redis://127.0.0.1`.
A Prometheus server is contacted only when `--flush_storage` is given, to
delete the series of the configured job.

## Running

```
market-sim start
```

Options of `start`:

| Option | Meaning | Default |
| --- | --- | --- |
| `-f`, `--flush_storage` | Flush all Redis data and the Prometheus series of the job, then start a fresh market | off |
| `-o`, `--max_orders_per_tick` | Upper bound of new orders per tick | 4000 |
| `--max-duration-seconds` | Stop once the simulation has run this many (real) seconds | no limit |
| `-a`, `--address` | Address the HTTP server listens on | `0.0.0.0` |
| `--port` | Port of the HTTP server | `9000` |
| `--redis-url` | Redis connection URL | `redis://127.0.0.1` |
| `--prometheus-url` | Prometheus base URL | `http://localhost:9090` |
| `--time-to-wait-millis` | Real milliseconds between ticks | `1000` |

Numeric options must be non-negative integers; otherwise the command prints
an error and exits with status 1. Running `market-sim` with no arguments
prints the help text.

Without `--flush_storage`, the simulation resumes from the state saved in
Redis under the key `simulation_state`, or starts a new market when there is
none. A stored state that cannot be read is an error.

When `--max-duration-seconds` is reached the simulation stops, the HTTP
server is shut down and the command exits with status 0.

### Settings file

Settings can also come from a file named `market-sim-settings.json`. It is
looked for in the current directory and then in each parent directory; the
nearest one is used. Values in the file take precedence over the command
line. Unknown keys are ignored; a value of the wrong type is an error.

```json
{
  "max_orders_per_tick": 500,
  "port": "9100",
  "max_investor_age": 90,
  "prometheus_job_name": "market-sim"
}
```

Recognised keys: `address`, `flush_storage`, `max_duration_seconds`,
`max_investor_age` (default 100), `max_orders_per_tick`, `port`,
`prometheus_job_name` (default `market-sim`), `prometheus_url`,
`redis_url`, `time_to_wait_millis`.

## HTTP endpoints

- `GET /health`: returns `OK`.
- `GET /prometheus/metrics`: metrics in Prometheus text format, each name
  prefixed with `market_sim_`: counts of companies, investors, listed
  companies, market makers, stock holdings and IPOs, the average number of
  holdings per owner, the virtual weekday and hour, the running seconds,
  `trading_now` (1 or 0), and `price_ask` for each company, labelled with
  its name and symbol.
- `GET /grafana/data`: JSON with the current virtual time, this year's
  holidays, the exchange currency and the simulation settings.

Any other path answers 404.

## How the market behaves

- The clock starts at the current Hong Kong date, midnight read as UTC, so
  it shows 08:00 HKT. Each tick moves it forward by 45 virtual minutes for
  every real second between ticks.
- Trading is open Monday to Friday, 09:00 to 15:59 HKT, except on 15 to 20
  weekday holidays picked at random the first time a year is reached.
  Outside trading hours the order book is emptied.
- Once per virtual day, investors older than the maximum age are removed,
  others may die at random, and up to three new investors may join.
- Prices move by up to ±0.10 around their mid price on every tick, with a
  random spread between 0.10 and 2.00.

## Using it as a library

```python
from marketsim.settings import SimulationSettings
from marketsim.simulation import Simulation
from marketsim.server import create_new_state


class InMemoryPrices:
    def __init__(self):
        self.history = []

    def save_historic_price(self, prices, time):
        self.history.append((time.get_now_unix_timestamp(), prices))


settings = SimulationSettings()
se, time = create_new_state(settings)
simulation = Simulation(bytes(32), settings, InMemoryPrices())
simulation.init(se, time)

for _ in range(10):
    simulation.run(se, time)
    time.tick()

print(time.get_virtual_time_formatted(), len(se.orders_book.orders))
```

`marketsim.state.SimulationState` turns an exchange and its clock into JSON
and back (`to_json`, `from_json`); `marketsim.metrics` builds the JSON and
Prometheus output without a server.

## What it does not do

- Brokers exist as data but are never created or used.
- IPOs are generated with dates, but companies are never listed from them
  and no company is ever delisted.
- Order matching understands limit orders, but the simulation only places
  market orders. Market makers hold permits but never trade.
- Metrics are served for scraping; nothing is pushed to Prometheus.