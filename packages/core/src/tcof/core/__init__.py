"""TCOF Core -- 任务标识解析与更新管线"""
