"""网关路由"""
