import uvicorn  # type: ignore

from myradio.utils import get_logger

log = get_logger("myradio.server")

if __name__ == "__main__":
    log.info("Running server")
    uvicorn.run("myradio.main:app", reload=True, host="127.0.0.1", port=8000)
