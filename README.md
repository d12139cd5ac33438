# ssm2dash

Reads live engine values from a Subaru ECU over the SSM2 serial protocol
and streams them to a browser dashboard.

## How it works

- Serial ports are listed and the first USB port whose manufacturer is
  `FTDI` is chosen. It is opened at 4800 baud with a 100 ms read timeout.
- The ECU is initialised and the init response is printed as hex bytes.
- Intake temperature (raw value minus 40), throttle angle and air/fuel
  sensor 1 are then polled every 100 ms.
- Each reading is published as a compact JSON message such as
  `{"ecu1":25,"ecu2":10,"ecu3":128}` to every client connected to the
  WebSocket server on `0.0.0.0:8889`.
- Static files are served over HTTP on `0.0.0.0:8888` from the
  `frontend` directory in the working directory. `/` maps to
  `/index.html`, `/socket_port` returns the WebSocket port (`8889`),
  non-`GET` requests get a 400 and missing files a 404. Up to four
  requests are handled at once.

Only read instructions are ever sent. Packets whose command byte is
`0xB0` or `0xB8` (ECU writes) are refused with `WriteInstructionError`.

## Installation

```
pip install ssm2dash
```

## Usage

Connect the adapter, place your dashboard files in `./frontend`, and run:

```
ssm2dash
```

Then point a browser at port 8888 of the machine. Add `-v` / `--verbose`
to log packets, requests and client connections.

If no FTDI port is found, `FTDI serial port not found!` is printed and
the command exits.

## Library use

The protocol layer can be used on its own:

```python
from ssm2dash.ssm2 import EcuParam, Ssm2

with Ssm2("/dev/ttyUSB0") as ecu:
    init_response = ecu.ecu_init()
    response = ecu.ecu_read(EcuParam.THROTTLE_ANGLE)
    throttle = response[5]
```

`ecu_init`, `ecu_read` and `send_read_packet` return the first valid
response packet as `bytes`, or empty bytes if none arrived. `Ssm2` also
accepts an already open port object (anything with `write`, `read` and
`close`) as its second argument.

`EcuParam` covers engine speed, engine load, intake temperature, throttle
angle and air/fuel sensor 1; `addr()` gives the ECU memory address and
`mask()` the positions of the value in the response packet.

Packet framing needs no serial port:

- `calculate_checksum(data)`: low byte of the sum of the bytes.
- `build_packet(data)`: adds the `80 10 F0` header, length byte and
  checksum.
- `check_packet(packet)`: length of the valid ECU packet at the start of
  `packet`, or 0.
- `find_packet(buffer)`: the first valid ECU packet in `buffer`, or `b""`.

`ssm2dash.utils` has `format_response`, `write_response` and
`get_frontend`; `ssm2dash.frontend` has `handle_request`, `http_listen`,
`websocket_listen` and `ClientRegistry`.

## What it does not do

- It does not open a browser for you.
- It never writes to the ECU.
- The HTTP server answers `GET` only and sends no `Content-Type` header.
- The command polls only the three values above; engine speed and load
  are available through `Ssm2.ecu_read` but are not streamed.

## Running the tests

```
pip install "ssm2dash[test]"
pytest
```