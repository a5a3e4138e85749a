import anyio
from fastapi.testclient import TestClient as FastAPITestClient


class TestClient(FastAPITestClient):
    """FastAPI TestClient that closes its lifespan streams on exit.

    Keeps ResourceWarning noise out of the collaboration API suites.
    """

    __test__ = False

    def __exit__(self, *args):
        result = super().__exit__(*args)
        for stream_name in ("stream_send", "stream_receive"):
            stream = getattr(self, stream_name, None)
            if stream is None:
                continue
            try:
                anyio.run(stream.aclose)
            except RuntimeError:
                # Stream already bound to a closed portal.
                continue
        return result
