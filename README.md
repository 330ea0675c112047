# metricscollect

A small metrics pipeline in two parts:

* **the agent** samples statistics of its own process together with host
  memory and CPU usage, and sends them to the server in batches;
* **the server** receives `gauge` and `counter` metrics, keeps them in memory
  (optionally saved to a JSON file on shutdown) and serves them back over HTTP.

Gauges hold the latest value sent; counters add every delta they receive to the
stored total.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Running the server

```
metricscollect-server -a localhost:8080 -f metrics.json
```

| Flag | Environment variable | Default          | Meaning                                                  |
|------|----------------------|------------------|----------------------------------------------------------|
| `-a` | `ADDRESS`            | `localhost:8080` | address to listen on (`host:port`)                       |
| `-i` | `STORE_INTERVAL`     | `300`            | store interval in seconds (read, see below)              |
| `-f` | `FILE_STORAGE_PATH`  | empty            | JSON file the metrics are written to on shutdown         |
| `-r` | `RESTORE`            | `true`           | load metrics from that file on start                     |
| `-d` | `DATABASE_DSN`       | empty            | database source name (see below)                         |
| `-k` | `KEY`                | empty            | hash key (read, see below)                               |

Environment variables that are set and valid take precedence over flags; the
resolved settings are logged on start. The server stops on SIGINT or SIGTERM,
and if a storage file is configured it writes every metric to it then.

### HTTP endpoints

| Method | Path                             | Purpose                                         |
|--------|----------------------------------|-------------------------------------------------|
| POST   | `/update/{type}/{name}/{value}`  | update one metric from the URL                  |
| POST   | `/update/`                       | update one metric from a JSON body              |
| POST   | `/updates/`                      | update a batch of metrics from a JSON array     |
| GET    | `/value/{type}/{name}`           | read one value as plain text                    |
| POST   | `/value/`                        | read one value as JSON                          |
| GET    | `/`                              | HTML list of all metrics                        |
| GET    | `/ping`                          | storage health check                            |

A JSON metric looks like this:

```json
{"id": "PollCount", "type": "counter", "delta": 5}
{"id": "Alloc", "type": "gauge", "value": 123.45}
```

Unknown metric types and values that do not parse answer with 400; reading a
metric that is not stored answers with 404. Request bodies may be
gzip-compressed (`Content-Encoding: gzip`), and responses are gzip-compressed
when the client sends `Accept-Encoding: gzip`.

## Running the agent

```
metricscollect-agent -a localhost:8080 -p 2 -r 10 -l 2
```

| Flag | Environment variable | Default            | Meaning                                  |
|------|----------------------|--------------------|------------------------------------------|
| `-a` | `ADDRESS`            | `localhost:8080`   | server address                           |
| `-p` | `POLL_INTERVAL`      | `2`                | seconds between samples                  |
| `-r` | `REPORT_INTERVAL`    | `10`               | seconds between reports                  |
| `-k` | `KEY`                | empty              | key for the `HashSHA256` request header  |
| `-l` | `RATE_LIMIT`         | `2`                | maximum concurrent reports               |
| `-S` | `SYPHER`             | `1234567890123456` | fixed initialisation vector (read only)  |

The agent posts gzip-compressed JSON batches to `http://<address>/updates/`.
A report that fails with a network error is retried after 1, 3 and 5 seconds,
then dropped. The agent stops on SIGINT or SIGTERM.

The process statistics are named `Alloc`, `HeapAlloc`, `NumGC`, `PauseTotalNs`
and so on, and are filled from what `psutil` and the `gc` module report for the
Python process; names with no counterpart there (such as `BuckHashSys`,
`Lookups`, `MCacheInuse`) are always sent as 0. Each sample also carries a
`RandomValue` gauge and a `PollCount` counter; the host sample carries
`TotalMemory`, `FreeMemory` (MiB) and `CPUutilization1`.

Both commands print their build version, date and commit on start.

## What it does not do

* There is no database backend: setting `-d` / `DATABASE_DSN` makes the server
  refuse to start. Metrics live in memory only.
* The store interval is read but not acted on: metrics are written to the
  storage file only when the server shuts down.
* The server reads the hash key but does not check the `HashSHA256` header of
  incoming requests.
* The agent reads the `-S` initialisation vector but does not encrypt what it
  sends.

## Using it as a library

The building blocks are importable on their own:

* `metricscollect.crypto` — `encrypt`, `decrypt` (AES-CFB with a fixed IV and
  URL-safe base64) and `sign`, which returns the data with the HMAC-SHA256
  digest of an empty message under the key appended;
* `metricscollect.configgetter` — `get_config_string`, `get_config_int64`,
  `get_config_float64` and `get_config_bool`, typed environment lookups that
  raise `ConfigError`;
* `metricscollect.kvstore.KeyValueStore` — a thread-safe key/value store;
* `metricscollect.logger.StructuredLogger` — a `logging`-backed logger with
  plain, printf-style and key/value methods;
* `metricscollect.server.storage.memory.MemoryStorage` and
  `metricscollect.server.business.collector.Collector` — the server's storage
  and metric logic;
* `metricscollect.server.handlers.MetricsAPI` and
  `metricscollect.server.router.build_app` — the HTTP handlers and a WSGI
  application serving them;
* `metricscollect.agent.service.MetricsAgent` — the collecting and reporting
  agent.