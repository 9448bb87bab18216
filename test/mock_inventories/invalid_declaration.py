hosts = [dict(name="web1", colour="blue")]
