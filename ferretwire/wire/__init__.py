"""MongoDB wire protocol headers, OP_MSG, OP_QUERY and OP_REPLY bodies, and their flags."""