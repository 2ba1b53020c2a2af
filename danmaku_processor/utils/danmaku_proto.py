"""
bilibili弾幕セグメント（DmSegMobileReply）のprotobufデコード

seg.so のレスポンスは次のメッセージで、必要なフィールドだけを定義する:

    message DanmakuElem {
        int64 id = 1;
        int32 progress = 2;   // 動画内の時刻（ミリ秒）
        int32 mode = 3;       // 1: 通常, 4: 下部, 5: 上部, 6: 逆方向
        int32 fontsize = 4;
        uint32 color = 5;
        string midHash = 6;
        string content = 7;
        int64 ctime = 8;
        int32 weight = 9;
        string action = 10;
        int32 pool = 11;
        string idStr = 12;
        int32 attr = 13;
    }
    message DmSegMobileReply { repeated DanmakuElem elems = 1; }
"""

from typing import List

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import DecodeError


_PACKAGE = "bilibili.community.service.dm.v1"

_FieldProto = descriptor_pb2.FieldDescriptorProto

_DANMAKU_ELEM_FIELDS = [
    (1, "id", _FieldProto.TYPE_INT64),
    (2, "progress", _FieldProto.TYPE_INT32),
    (3, "mode", _FieldProto.TYPE_INT32),
    (4, "fontsize", _FieldProto.TYPE_INT32),
    (5, "color", _FieldProto.TYPE_UINT32),
    (6, "midHash", _FieldProto.TYPE_STRING),
    (7, "content", _FieldProto.TYPE_STRING),
    (8, "ctime", _FieldProto.TYPE_INT64),
    (9, "weight", _FieldProto.TYPE_INT32),
    (10, "action", _FieldProto.TYPE_STRING),
    (11, "pool", _FieldProto.TYPE_INT32),
    (12, "idStr", _FieldProto.TYPE_STRING),
    (13, "attr", _FieldProto.TYPE_INT32),
]


def _build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="bilibili/community/service/dm/v1/dm.proto",
        package=_PACKAGE,
        syntax="proto3",
    )

    elem = file_proto.message_type.add(name="DanmakuElem")
    for number, name, field_type in _DANMAKU_ELEM_FIELDS:
        elem.field.add(
            name=name,
            number=number,
            type=field_type,
            label=_FieldProto.LABEL_OPTIONAL,
        )

    reply = file_proto.message_type.add(name="DmSegMobileReply")
    reply.field.add(
        name="elems",
        number=1,
        type=_FieldProto.TYPE_MESSAGE,
        label=_FieldProto.LABEL_REPEATED,
        type_name=f".{_PACKAGE}.DanmakuElem",
    )
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file_descriptor().SerializeToString())

DanmakuElem = message_factory.GetMessageClass(
    _pool.FindMessageTypeByName(f"{_PACKAGE}.DanmakuElem")
)
DmSegMobileReply = message_factory.GetMessageClass(
    _pool.FindMessageTypeByName(f"{_PACKAGE}.DmSegMobileReply")
)


def decode_segment(content: bytes) -> List:
    """
    seg.so のレスポンスボディをデコード

    Args:
        content: protobufのバイト列

    Returns:
        DanmakuElem のリスト

    Raises:
        ValueError: protobufとして解析できない
    """
    reply = DmSegMobileReply()
    try:
        reply.ParseFromString(content)
    except DecodeError as e:
        raise ValueError(f"Failed to decode danmaku segment: {e}")
    return list(reply.elems)
