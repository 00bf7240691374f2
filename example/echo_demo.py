import logging
import threading

from udp_request import InboundRequest, udp_request

def main():
    # One endpoint answering its own requests on a fixed port
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    node = udp_request(codec="utf-8")
    finished = threading.Event()

    def on_request(event: InboundRequest):
        print("request:", event.value)
        node.response("echo: " + event.value, event.peer)

    node.on(InboundRequest, on_request)

    def ready():
        def done(err, reply):
            if err:
                print("request failed:", err)
            else:
                print("response:", reply.value)
            finished.set()
        node.request("hello", ("127.0.0.1", 10000), done)

    node.listen(10000, ready)
    finished.wait()

    # Blocking form from a second endpoint, same exchange
    with udp_request(codec="utf-8", retry=True) as client:
        reply = client.call("hello again", ("127.0.0.1", 10000))
        print("response:", reply.value)

    node.destroy()

if __name__ == "__main__":
    main()
