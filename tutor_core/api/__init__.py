"""Web 路由层调用的服务函数。"""
