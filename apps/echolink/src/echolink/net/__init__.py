from echolink.net.channel import ChannelError, Message, RecvError, SendError, SocketChannel, is_would_block
from echolink.net.link import EchoLink, link_from_config
from echolink.net.pump import Pump, PumpReport, SendTimer
from echolink.net.registry import TaskRegistry
from echolink.net.serializer import Transform, decode_transforms, encode_transforms
from echolink.net.task import ConnectErr, ConnectOk, ConnectionSetupError, ConnectionTask, DaemonThreadExecutor, connect_websocket

__all__ = [
    "ChannelError",
    "ConnectErr",
    "ConnectOk",
    "ConnectionSetupError",
    "ConnectionTask",
    "DaemonThreadExecutor",
    "EchoLink",
    "Message",
    "Pump",
    "PumpReport",
    "RecvError",
    "SendError",
    "SendTimer",
    "SocketChannel",
    "TaskRegistry",
    "Transform",
    "connect_websocket",
    "decode_transforms",
    "encode_transforms",
    "is_would_block",
    "link_from_config",
]
