# finlogger

The data-logging core of a surf-fin ocean sensor, as a plain Python package
with no dependencies outside the standard library.

## What it covers

- `finlogger.ensemble`: binary layouts of measurement ensembles.
  `EnsembleHeader` packs a 4-bit ensemble type (an `EnsembleID`) and a
  20-bit elapsed time in deciseconds into three little-endian bytes, and
  `EnsembleHeader.unpack` reads them back. `Ensemble07`, `Ensemble08`,
  `Ensemble10` and `Ensemble11` pack battery, temperature/time, IMU and
  IMU-with-location records. `elapsed_deciseconds` turns two 32-bit
  millisecond clock readings into an elapsed time wrapped to 24 bits.
- `finlogger.base64`: `b64_encode`, `b64_decode`, `urlsafe_b64_encode` and
  `urlsafe_b64_decode`. Each takes an optional size limit and raises
  `OverflowError` when the result would not fit.
- `finlogger.base85`: `encode` and `decode` with the RFC 1924 character set;
  a group cut short raises `ValueError`.
- `finlogger.flog`: `FaultLog` keeps the latest 128 faults as `FlogEntry`
  records (timestamp, `FlogCode`, 32-bit parameter). `overrun()` tells
  whether older entries were dropped, `format_lines()` renders the log and
  `find_message` gives a code's description.
- `finlogger.conio`: `Console` reads queued input (`feed`) or an input
  stream and writes to an output stream, with `kbhit`, `getch`, `putch`,
  an echoing `getline` that handles backspace, and C-style `printf`.
- `finlogger.menu`: numbered menus of `MenuItem` entries, each with an
  action or a submenu. `execute_menu` runs a menu on a `Console`: `?` shows
  it again, `q` leaves it, and it also ends when input runs out.
- `finlogger.deploy`: `Deployment` holds one open session file in a
  `Mode` (READ, WRITE, RDWR) and raises `DeploymentError` on misuse.
- `finlogger.metadata`: `MetadataStore` keeps a file with a
  `MetadataHeader` followed by one `TimestampEntry` per session.
- `finlogger.recorder`: `Recorder` stores sessions under a data directory.
  It buffers bytes into fixed-size, zero-padded packets, returns the last
  packet of the newest session with its publish name (`get_last_packet`)
  and trims it afterwards (`pop_last_packet`).
- `finlogger.cloud`: `Cloud` connects, disconnects and publishes over a
  link object you supply. It limits connection attempts with a persistent
  counter and enforces event size and publish-interval limits. Failures
  raise `CloudError` carrying a `CloudStatus`.
- `finlogger.upload`: `DataUpload` drains the recorder. Each packet goes out
  as a URL-safe Base64 blob, and the task returns the next `State`.
- `finlogger.tasks`: the `State` enum and `ChargeTask`. `ChargeTask` returns
  `State.CLI` when `#CLI` is typed and `State.DEEP_SLEEP` once the charger is
  removed.
- `finlogger.edge_platform`: `EdgePlatform.from_hw_info(model, features,
  platform)` decodes a tracker's hardware-info model number and feature
  bytes into its model and peripheral variants.

## Example

```python
from finlogger.base64 import urlsafe_b64_encode, urlsafe_b64_decode
from finlogger.ensemble import EnsembleHeader, EnsembleID

header = EnsembleHeader(ensemble_type=EnsembleID.TEMP_IMU, elapsed_ds=42)
raw = header.pack()
assert EnsembleHeader.unpack(raw) == header

text = urlsafe_b64_encode(b"\xfb\xff", 1024)
assert text == "-_8="
assert urlsafe_b64_decode(text, 1024) == b"\xfb\xff"
```

## What it does not do

The package has no command-line program and does not talk to hardware.
Sensor readings, the charger state, the battery voltage and the cloud
connection are all passed in by the caller as objects or callables. For
`Cloud`, that is a link object with `connected`, `disconnected`, `connect`,
`disconnect`, `process` and `publish` methods. It does not collect sensor
data into ensembles by itself.

## Running the tests

```
pip install -e .[test]
pytest
```